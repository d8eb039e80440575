import re
import threading
import xml.etree.ElementTree as ET

import pytest

from mcp_drawio_generator.codec import compress_xml, create_diagrams_net_url, decompress_xml
from mcp_drawio_generator.exceptions import DanglingReferenceError
from mcp_drawio_generator.ids import IdGenerator
from mcp_drawio_generator.xml_builder import (
    DiagramBuilder,
    count_edges,
    count_vertices,
    escape_xml,
    extract_cell_ids,
    extract_graph_model,
    wrap_in_mxfile,
)


def _cell(xml: str, cell_id: str) -> ET.Element:
    root = ET.fromstring(xml)
    return root.find(f".//mxCell[@id='{cell_id}']")


# ============================================================================
# Identifier generation
# ============================================================================

def test_id_generator_is_increasing_and_skips_roots():
    ids = IdGenerator()
    values = [ids.next_id() for _ in range(50)]

    assert values[:3] == ["cell-2", "cell-3", "cell-4"]
    assert len(set(values)) == 50
    numbers = [int(value.split("-")[1]) for value in values]
    assert numbers == sorted(numbers)
    assert "0" not in values and "1" not in values


def test_id_generator_reset():
    ids = IdGenerator()
    ids.next_id()
    ids.next_id()
    ids.reset()
    assert ids.next_id() == "cell-2"


def test_id_generator_rejects_reserved_start():
    with pytest.raises(ValueError):
        IdGenerator(start=1)


def test_id_generator_is_thread_safe():
    ids = IdGenerator()
    collected = []
    lock = threading.Lock()

    def worker():
        local = [ids.next_id() for _ in range(200)]
        with lock:
            collected.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(collected) == len(set(collected)) == 1600


def test_builders_do_not_share_counters():
    assert DiagramBuilder().ids.next_id() == DiagramBuilder().ids.next_id() == "cell-2"


# ============================================================================
# Base model
# ============================================================================

def test_base_model_has_only_root_cells(builder):
    xml = builder.create_base_model()
    root = ET.fromstring(xml)

    cells = root.findall(".//mxCell")
    assert [cell.get("id") for cell in cells] == ["0", "1"]
    assert cells[1].get("parent") == "0"
    assert root.get("pageWidth") == "1100"
    assert root.get("pageHeight") == "850"
    assert extract_cell_ids(xml) == []


def test_base_model_page_size(builder):
    root = ET.fromstring(builder.create_base_model(2000, 1500.0))
    assert root.get("pageWidth") == "2000"
    assert root.get("pageHeight") == "1500"


# ============================================================================
# Shapes and connections
# ============================================================================

def test_add_shape_inserts_before_root_close(builder):
    xml = builder.create_base_model()
    result = builder.add_shape(xml, "ellipse", "Hello", 10, 20.5, 120, 60, "#d5e8d4", "#000000")

    assert result.id == "cell-2"
    assert result.xml.index('id="cell-2"') < result.xml.index("</root>")
    cell = _cell(result.xml, "cell-2")
    assert cell.get("vertex") == "1"
    assert cell.get("parent") == "1"
    assert cell.get("value") == "Hello"
    geometry = cell.find("mxGeometry")
    assert geometry.get("x") == "10"
    assert geometry.get("y") == "20.5"
    assert geometry.get("as") == "geometry"
    assert result.shape.style.startswith("fillColor=#d5e8d4;")


def test_two_shapes_round_trip_ids(builder):
    xml = builder.create_base_model()
    first = builder.add_shape(xml, "rectangle", "A", 0, 0, 100, 50)
    second = builder.add_shape(first.xml, "cloud", "B", 200, 0, 100, 50)

    assert extract_cell_ids(second.xml) == [first.id, second.id]
    assert count_vertices(second.xml) == 2


def test_add_connection_with_label(builder):
    xml = builder.create_base_model()
    a = builder.add_shape(xml, "rectangle", "A", 0, 0, 100, 50)
    b = builder.add_shape(a.xml, "rectangle", "B", 0, 200, 100, 50)
    result = builder.add_connection(b.xml, a.id, b.id, label="next", style="dashed")

    cell = _cell(result.xml, result.id)
    assert cell.get("edge") == "1"
    assert cell.get("source") == a.id
    assert cell.get("target") == b.id
    assert cell.get("value") == "next"
    assert "dashed=1;" in cell.get("style")
    assert cell.find("mxGeometry").get("relative") == "1"
    assert count_edges(result.xml) == 1


def test_add_connection_without_label_has_no_value(builder):
    xml = builder.create_base_model()
    result = builder.add_connection(xml, "cell-9", "cell-10")
    assert _cell(result.xml, result.id).get("value") is None


def test_dangling_connection_is_accepted_by_default(builder):
    xml = builder.create_base_model()
    result = builder.add_connection(xml, "ghost-a", "ghost-b")

    cell = _cell(result.xml, result.id)
    assert cell.get("source") == "ghost-a"
    assert cell.get("target") == "ghost-b"


def test_strict_builder_rejects_dangling_connection():
    strict = DiagramBuilder(strict=True)
    xml = strict.create_base_model()
    shape = strict.add_shape(xml, "rectangle", "A", 0, 0, 100, 50)

    with pytest.raises(DanglingReferenceError) as excinfo:
        strict.add_connection(shape.xml, shape.id, "missing")
    assert excinfo.value.missing == ["missing"]

    assert strict.add_connection(shape.xml, shape.id, shape.id).connection.source_id == shape.id


def test_insertion_without_marker_leaves_document_unchanged(builder):
    result = builder.add_shape("<notADiagram/>", "rectangle", "A", 0, 0, 1, 1)
    assert result.xml == "<notADiagram/>"


# ============================================================================
# Escaping
# ============================================================================

def test_escape_xml():
    assert escape_xml("""<a & "b" 'c'>""") == "&lt;a &amp; &quot;b&quot; &apos;c&apos;&gt;"


def test_shape_text_and_label_are_escaped(builder):
    nasty = """Tom & "Jerry" <'x'>"""
    xml = builder.create_base_model()
    shape = builder.add_shape(xml, "note", nasty, 0, 0, 100, 50)
    edge = builder.add_connection(shape.xml, shape.id, shape.id, label=nasty)

    shape_line = re.search(r'<mxCell id="cell-2"[^\n]*', edge.xml).group(0)
    value = re.search(r'value="([^"]*)"', shape_line).group(1)
    for raw in "<>\"'":
        assert raw not in value
    assert "&amp;" in value and "&lt;" in value and "&apos;" in value

    # And a real parser reads back the original text.
    assert _cell(edge.xml, shape.id).get("value") == nasty
    assert _cell(edge.xml, edge.id).get("value") == nasty


# ============================================================================
# Wrapping and compression
# ============================================================================

def test_wrap_in_mxfile_structure(builder):
    model = builder.create_base_model()
    wrapped = wrap_in_mxfile(model, 'R&D "plan"', timestamp="2026-01-01T00:00:00.000Z")

    assert wrapped.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    root = ET.fromstring(wrapped.split("\n", 1)[1])
    assert root.tag == "mxfile"
    assert root.get("host") == "app.diagrams.net"
    assert root.get("modified") == "2026-01-01T00:00:00.000Z"
    assert root.get("type") == "device"
    diagram = root.find("diagram")
    assert diagram.get("name") == 'R&D "plan"'
    assert diagram.get("id") == "diagram-1"
    assert diagram.find("mxGraphModel") is not None


def test_wrap_compressed_uses_encoder(builder):
    model = builder.create_base_model()
    wrapped = wrap_in_mxfile(model, "T", compressed=True, encoder=lambda text: "ENCODED")
    assert "<mxGraphModel" not in wrapped
    assert "    ENCODED\n" in wrapped


def test_compressed_payload_decodes_to_model(builder):
    model = builder.add_shape(builder.create_base_model(), "rectangle", "Ünïcode & more", 1, 2, 3, 4).xml
    wrapped = wrap_in_mxfile(model, "T", compressed=True)

    diagram = ET.fromstring(wrapped.split("\n", 1)[1]).find("diagram")
    assert decompress_xml(diagram.text.strip()) == model
    assert compress_xml(model) == diagram.text.strip()


def test_decompress_passes_plain_text_through():
    assert decompress_xml("<mxGraphModel/>") == "<mxGraphModel/>"


def test_diagrams_net_url():
    url = create_diagrams_net_url('<a b="c"/>')
    assert url == "https://app.diagrams.net/#R%3Ca%20b%3D%22c%22%2F%3E"


def test_extract_graph_model(builder):
    model = builder.add_shape(builder.create_base_model(), "rectangle", "A", 0, 0, 10, 10).xml

    assert extract_graph_model(model) == model
    plain = wrap_in_mxfile(model, "T")
    assert extract_graph_model(plain) == plain
    assert extract_graph_model(wrap_in_mxfile(model, "T", compressed=True)) == model
