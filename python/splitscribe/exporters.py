from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from .assembler import format_line, format_time_range
from .models import TranscriptionResult


NUMBER_COL_TWIPS = 601
TIME_COL_TWIPS = 1701
PAGE_WIDTH_TWIPS = 11906
SIDE_MARGIN_TWIPS = 1134
TEXT_COL_TWIPS = PAGE_WIDTH_TWIPS - (SIDE_MARGIN_TWIPS * 2) - NUMBER_COL_TWIPS - TIME_COL_TWIPS


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(content, encoding=encoding)
    tmp.replace(path)


def export_json(json_report: str, output_path: Path) -> None:
    atomic_write_text(output_path, json_report + "\n")


def export_txt(text_report: str, output_path: Path) -> None:
    # utf-8-sig prefixes the byte-order marker that Windows editors expect.
    atomic_write_text(output_path, text_report, encoding="utf-8-sig")


def _header_lines(source_name: str, duration_sec: float, segment_count: int) -> list[str]:
    duration_min = max(1, round(duration_sec / 60))
    return [
        f'File: "{Path(source_name).stem}"',
        f"Date: {datetime.now().strftime('%Y-%m-%d')}",
        f"Duration: {duration_min} minutes",
        f"Segments: {segment_count}",
        "",
    ]


def export_docx(
    ordered: Iterable[TranscriptionResult],
    output_path: Path,
    *,
    source_name: str,
    duration_sec: float,
) -> None:
    try:
        from docx import Document
        from docx.enum.table import WD_TABLE_ALIGNMENT
        from docx.enum.text import WD_ALIGN_PARAGRAPH
        from docx.shared import Mm, Pt, RGBColor, Twips
    except ImportError as exc:  # pragma: no cover - env dependent
        raise RuntimeError("python-docx is not installed") from exc

    rows = list(ordered)

    def _format_paragraph(paragraph: Any) -> None:
        paragraph.paragraph_format.space_after = Pt(0)
        paragraph.paragraph_format.space_before = Pt(0)
        paragraph.paragraph_format.line_spacing = 1.0

    doc = Document()
    section = doc.sections[0]
    section.page_width = Mm(210)
    section.page_height = Mm(297)
    section.left_margin = Mm(20)
    section.right_margin = Mm(20)

    style = doc.styles["Normal"]
    style.font.size = Pt(11)
    style.paragraph_format.space_after = Pt(0)
    style.paragraph_format.line_spacing = 1.0

    for line in _header_lines(source_name, duration_sec, len(rows)):
        _format_paragraph(doc.add_paragraph(line))

    if rows:
        table = doc.add_table(rows=0, cols=3)
        table.style = "Table Grid"
        table.autofit = False
        table.alignment = WD_TABLE_ALIGNMENT.LEFT
        widths = (NUMBER_COL_TWIPS, TIME_COL_TWIPS, TEXT_COL_TWIPS)
        for column, width in zip(table.columns, widths):
            column.width = Twips(width)

        for line_no, result in enumerate(rows, start=1):
            row = table.add_row()
            for cell, width in zip(row.cells, widths):
                cell.width = Twips(width)

            number_p = row.cells[0].paragraphs[0]
            _format_paragraph(number_p)
            number_p.alignment = WD_ALIGN_PARAGRAPH.RIGHT
            number_p.add_run(str(line_no))

            time_p = row.cells[1].paragraphs[0]
            _format_paragraph(time_p)
            time_p.add_run(format_time_range(result))

            text_p = row.cells[2].paragraphs[0]
            _format_paragraph(text_p)
            if result.error is not None:
                error_run = text_p.add_run(f"ERROR: {result.error}")
                error_run.bold = True
                error_run.font.color.rgb = RGBColor(0xC0, 0x00, 0x00)
            elif result.text:
                text_p.add_run(result.text)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(output_path)


def echo_report(ordered: Iterable[TranscriptionResult]) -> None:
    print("\n=== Transcription Results ===")
    for result in ordered:
        print(format_line(result))
