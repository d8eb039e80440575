"""
File system and desktop application helpers.

These are best effort: locating or launching draw.io never raises, it just
reports that nothing was opened.
"""

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

from . import config
from .ids import sanitize_title, timestamp_ms

logger = logging.getLogger(__name__)

DRAWIO_EXTENSION = ".drawio"

# Chrome PWA id of the official draw.io app
_DRAWIO_PWA_ID = "aapocclcgogkmnckokdopfmhonfmgoek"


def diagram_filename(title: str, now: Optional[float] = None) -> str:
    return f"{sanitize_title(title)}_{timestamp_ms(now)}{DRAWIO_EXTENSION}"


def _write_diagram(directory: Path, xml: str, title: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    file_path = directory / diagram_filename(title)
    file_path.write_text(xml, encoding="utf-8")
    logger.debug("Wrote %s", file_path)
    return file_path


def save_diagram_to_temp(xml: str, title: str) -> Path:
    """Write a scratch copy for the desktop app; the OS cleans these up."""
    return _write_diagram(config.temp_dir(), xml, title)


def save_diagram_to_downloads(xml: str, title: str) -> Path:
    """Write a durable copy to the configured output directory."""
    return _write_diagram(config.output_dir(), xml, title)


def _candidate_paths() -> list:
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA", "")
        program_files = os.environ.get("PROGRAMFILES", "")
        program_files_x86 = os.environ.get("PROGRAMFILES(X86)", "")
        return [
            Path(local, "Programs", "draw.io", "draw.io.exe"),
            Path(program_files, "draw.io", "draw.io.exe"),
            Path(program_files_x86, "draw.io", "draw.io.exe"),
            Path(program_files, "Google", "Chrome", "Application", "chrome.exe"),
            Path(program_files_x86, "Google", "Chrome", "Application", "chrome.exe"),
            Path(local, "Google", "Chrome", "Application", "chrome.exe"),
        ]
    if sys.platform == "darwin":
        return [Path("/Applications/draw.io.app")]
    return [
        Path("/usr/bin/drawio"),
        Path("/usr/local/bin/drawio"),
        Path("/opt/drawio/drawio"),
    ]


def find_drawio_path() -> Optional[str]:
    """Locate a draw.io installation, or None."""
    for candidate in _candidate_paths():
        if candidate.exists():
            return str(candidate)
    return shutil.which("drawio")


def open_in_drawio(file_path: Path) -> bool:
    """Launch draw.io detached on the given file; False if that was not possible."""
    drawio_path = find_drawio_path()
    if not drawio_path:
        logger.info("draw.io installation not found; not opening %s", file_path)
        return False

    if sys.platform == "darwin":
        cmd = ["open", "-a", "draw.io", str(file_path)]
    elif drawio_path.lower().endswith("chrome.exe"):
        cmd = [drawio_path, f"--app-id={_DRAWIO_PWA_ID}", str(file_path)]
    else:
        cmd = [drawio_path, str(file_path)]

    try:
        subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.warning("Failed to launch draw.io: %s", e)
        return False
    return True
