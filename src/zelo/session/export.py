"""Session export formats (JSON, plain text, SubRip)."""

from enum import Enum

from zelo.session.models import Session


class ExportFormat(str, Enum):
    """Supported export formats."""

    JSON = "json"
    TXT = "txt"
    SRT = "srt"


def format_srt_time(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm``; milliseconds are truncated, not rounded."""
    whole = int(seconds)
    hours = whole // 3600
    minutes = (whole % 3600) // 60
    secs = whole % 60
    millis = int((seconds - whole) * 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def _export_json(session: Session) -> str:
    return session.to_record().model_dump_json(indent=2)


def _export_txt(session: Session) -> str:
    return "\n".join(segment.text for segment in session.segments if segment.is_final)


def _export_srt(session: Session) -> str:
    blocks = []
    finals = [segment for segment in session.segments if segment.is_final]
    for index, segment in enumerate(finals, start=1):
        start = format_srt_time(segment.start_time)
        end = format_srt_time(segment.end_time)
        blocks.append(f"{index}\n{start} --> {end}\n{segment.text}\n\n")
    return "".join(blocks)


_EXPORTERS = {
    ExportFormat.JSON: _export_json,
    ExportFormat.TXT: _export_txt,
    ExportFormat.SRT: _export_srt,
}


def export_session(session: Session, fmt: ExportFormat | str) -> str:
    """Render a session in the requested format.

    Text and SubRip exports only include final segments.

    Raises:
        ValueError: If the format is unknown
    """
    return _EXPORTERS[ExportFormat(fmt)](session)
