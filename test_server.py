import json
import re
import xml.etree.ElementTree as ET

import pytest

from mcp_drawio_generator import files, server
from mcp_drawio_generator.exceptions import DiagramNotFoundError


def _vertices(xml: str) -> list:
    root = ET.fromstring(xml.split("\n", 1)[1])
    return [cell for cell in root.iter("mxCell") if cell.get("vertex") == "1"]


def test_create_diagram_returns_empty_canvas(isolated_dirs):
    result = json.loads(server.create_diagram(
        title="Network",
        description="Office network",
        diagram_type="network",
        page_width=2000,
    ))

    assert result["success"] is True
    assert result["resource_uri"] == f"drawio://diagram/{result['diagram_id']}"
    assert result["web_url"].startswith("https://app.diagrams.net/#R")
    assert result["opened_in_app"] is False
    assert 'pageWidth="2000"' in result["xml"]
    assert _vertices(result["xml"]) == []
    assert result["file_path"].startswith(str((isolated_dirs / "tmp").resolve()))

    metadata = json.loads(server.metadata_resource(result["diagram_id"]))
    assert metadata["type"] == "network"
    assert metadata["page_width"] == 2000


def test_create_diagram_reports_every_invalid_field():
    result = json.loads(server.create_diagram(
        title="Bad",
        description="x",
        diagram_type="mindmap",
        output_format="zipped",
    ))

    assert result["error"].startswith("Invalid arguments:")
    assert "diagram_type" in result["error"]
    assert "output_format" in result["error"]


def test_incremental_editing_round_trip():
    canvas = json.loads(server.create_diagram(title="Arch", description="", diagram_type="custom"))

    first = json.loads(server.add_shape(
        xml=canvas["xml"], shape_type="cylinder", text="DB", x=10, y=20, width=80, height=100,
    ))
    second = json.loads(server.add_shape(
        xml=first["xml"], shape_type="cloud", text="CDN", x=300, y=20, width=120, height=80,
        fill_color="#dae8fc",
    ))
    edge = json.loads(server.add_connection(
        xml=second["xml"], source_id=first["id"], target_id=second["id"], label="sync", arrow_start=True,
    ))

    assert edge["connection"]["label"] == "sync"
    assert "startArrow=classic" in edge["xml"]
    assert second["shape"]["fill_color"] == "#dae8fc"
    assert json.loads(server.extract_cell_ids(edge["xml"])) == [first["id"], second["id"], edge["id"]]


def test_add_shape_validation_error_has_no_effect():
    canvas = json.loads(server.create_diagram(title="Arch", description="", diagram_type="custom"))
    result = json.loads(server.add_shape(
        xml=canvas["xml"], shape_type="triangle", text="?", x=0, y=0, width="wide", height=10,
    ))

    assert "shape_type" in result["error"]
    assert "width" in result["error"]
    assert "xml" not in result


def test_add_connection_strict_mode(monkeypatch):
    monkeypatch.setattr(server.builder, "strict", True)
    canvas = json.loads(server.create_diagram(title="Strict", description="", diagram_type="custom"))

    result = json.loads(server.add_connection(xml=canvas["xml"], source_id="a", target_id="b"))
    assert "a, b" in result["error"]


def test_add_connection_lenient_by_default():
    canvas = json.loads(server.create_diagram(title="Lenient", description="", diagram_type="custom"))
    result = json.loads(server.add_connection(xml=canvas["xml"], source_id="a", target_id="b"))
    assert result["success"] is True


def test_create_flowchart_and_resources(login_steps):
    result = json.loads(server.create_flowchart(title="Login", steps=login_steps))

    assert result["step_count"] == 4
    assert len(_vertices(result["xml"])) == 4

    diagram_id = result["diagram_id"]
    assert server.diagram_resource(diagram_id) == result["xml"]

    preview = json.loads(server.preview_resource(diagram_id))
    assert preview["preview"] == result["xml"][:500]
    assert preview["metadata"]["element_count"] == 4
    assert preview["metadata"]["connection_count"] == 3

    listed = [metadata["id"] for metadata in json.loads(server.list_diagrams())]
    assert diagram_id in listed


def test_create_flowchart_rejects_bad_steps():
    result = json.loads(server.create_flowchart(title="Bad", steps=[{"id": "a", "text": "A"}]))
    assert "steps.0.type" in result["error"]


def test_unknown_resource_raises():
    with pytest.raises(DiagramNotFoundError):
        server.metadata_resource("does_not_exist_1")


def test_save_diagram_writes_file(isolated_dirs):
    result = json.loads(server.save_diagram(xml="<mxfile/>", title="Quarterly Plan"))

    path = result["file_path"]
    assert re.search(r"quarterly_plan_\d+\.drawio$", path)
    assert path.startswith(str((isolated_dirs / "downloads").resolve()))
    with open(path, encoding="utf-8") as handle:
        assert handle.read() == "<mxfile/>"
    assert result["resource_uri"] == f"drawio://diagram/{result['diagram_id']}"


def test_delete_diagram():
    created = json.loads(server.create_diagram(title="Temp", description="", diagram_type="custom"))

    assert json.loads(server.delete_diagram(created["diagram_id"]))["success"] is True
    assert "not found" in json.loads(server.delete_diagram(created["diagram_id"]))["error"]


def test_discovery_tools():
    assert "create_flowchart" in json.loads(server.list_tools())
    assert [tool["name"] for tool in json.loads(server.search_tools(query="flowchart"))] == ["create_flowchart"]
    assert json.loads(server.get_tool_schema("add_shape"))["category"] == "editing"
    assert json.loads(server.get_tool_schema("draw_unicorn")) == {"error": "Tool not found: draw_unicorn"}


def test_delete_diagram_by_resource_uri():
    created = json.loads(server.create_diagram(title="Temp", description="", diagram_type="custom"))

    assert json.loads(server.delete_diagram(created["resource_uri"]))["diagram_id"] == created["diagram_id"]
    assert created["diagram_id"] not in server.store


def test_scratch_copy_failure_still_creates_diagram(monkeypatch):
    def unwritable(xml, title):
        raise OSError("read-only file system")

    monkeypatch.setattr(server, "save_diagram_to_temp", unwritable)
    monkeypatch.setenv("MCP_DRAWIO_OPEN_APP", "1")

    result = json.loads(server.create_diagram(title="No Disk", description="", diagram_type="custom"))

    assert result["success"] is True
    assert result["file_path"] is None
    assert result["opened_in_app"] is False
    assert server.diagram_resource(result["diagram_id"]) == result["xml"]


def test_open_app_without_installation_reports_false(monkeypatch):
    monkeypatch.setenv("MCP_DRAWIO_OPEN_APP", "1")
    monkeypatch.setattr(files, "find_drawio_path", lambda: None)

    result = json.loads(server.create_flowchart(title="Login", steps=[{"id": "s", "type": "start", "text": "Go"}]))

    assert result["success"] is True
    assert result["file_path"] is not None
    assert result["opened_in_app"] is False


def test_open_app_reports_launch(monkeypatch):
    opened = []
    monkeypatch.setenv("MCP_DRAWIO_OPEN_APP", "1")
    monkeypatch.setattr(server, "open_in_drawio", lambda path: opened.append(path) or True)

    result = json.loads(server.create_diagram(title="Shown", description="", diagram_type="custom"))

    assert result["opened_in_app"] is True
    assert [str(path) for path in opened] == [result["file_path"]]
