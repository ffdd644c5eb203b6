"""
PDF rendering for evidence documents.

Builds the audit certificate with reportlab platypus. Rendering is
synchronous and CPU-bound; the packager runs it in a worker thread.
"""

import io
from datetime import datetime
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    HRFlowable,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from bounty_audit.schemas.evidence import EvidenceDocument


PRIMARY     = HexColor("#1f3a5f")
TEXT_DARK   = HexColor("#1a1a1a")
TEXT_LIGHT  = HexColor("#6e7681")
BORDER      = HexColor("#d0d7de")
HEADER_BG   = HexColor("#f6f8fa")
SUCCESS     = HexColor("#1a7f37")
ERROR       = HexColor("#cf222e")
WARNING     = HexColor("#9a6700")

QR_SIZE = 1.6 * inch

SECTION_TITLES = {
    "payout_table": "Contributions & Payouts",
    "fairness_analysis": "Fairness Analysis",
    "timeline": "Event Timeline",
    "file_hashes": "File Integrity",
    "signatures": "Manifest Signatures",
}


def _build_styles() -> Dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()

    return {
        "title": ParagraphStyle(
            "title",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=18,
            textColor=PRIMARY,
            leading=22,
            spaceAfter=4,
        ),
        "subtitle": ParagraphStyle(
            "subtitle",
            parent=base["Normal"],
            fontName="Helvetica",
            fontSize=9,
            textColor=TEXT_LIGHT,
            leading=12,
            spaceAfter=12,
        ),
        "section": ParagraphStyle(
            "section",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=13,
            textColor=PRIMARY,
            spaceBefore=14,
            spaceAfter=8,
        ),
        "body": ParagraphStyle(
            "body",
            parent=base["Normal"],
            fontName="Helvetica",
            fontSize=10,
            textColor=TEXT_DARK,
            leading=14,
            spaceAfter=4,
        ),
        "cell": ParagraphStyle(
            "cell",
            parent=base["Normal"],
            fontName="Helvetica",
            fontSize=8,
            textColor=TEXT_DARK,
            leading=10,
        ),
        "mono": ParagraphStyle(
            "mono",
            parent=base["Normal"],
            fontName="Courier",
            fontSize=7,
            textColor=TEXT_DARK,
            leading=9,
        ),
        "pass": ParagraphStyle(
            "pass",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=10,
            textColor=SUCCESS,
            leading=14,
        ),
        "fail": ParagraphStyle(
            "fail",
            parent=base["Normal"],
            fontName="Helvetica-Bold",
            fontSize=10,
            textColor=ERROR,
            leading=14,
        ),
        "notice": ParagraphStyle(
            "notice",
            parent=base["Normal"],
            fontName="Helvetica-Oblique",
            fontSize=9,
            textColor=WARNING,
            leading=12,
            spaceAfter=6,
        ),
        "footer": ParagraphStyle(
            "footer",
            parent=base["Normal"],
            fontName="Helvetica",
            fontSize=7,
            textColor=TEXT_LIGHT,
            leading=9,
        ),
    }


def _text(value: Optional[object]) -> str:
    return escape("" if value is None else str(value))


def _stamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def _grid(rows: List[list], col_widths: List[float]) -> Table:
    table = Table(rows, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
        ("BOX", (0, 0), (-1, -1), 0.5, BORDER),
        ("INNERGRID", (0, 0), (-1, -1), 0.5, BORDER),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ("LEFTPADDING", (0, 0), (-1, -1), 6),
        ("RIGHTPADDING", (0, 0), (-1, -1), 6),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def _header_row(styles, *labels: str) -> list:
    return [Paragraph(f"<b>{_text(label)}</b>", styles["cell"]) for label in labels]


def qr_drawing(url: str, size: float = QR_SIZE) -> Drawing:
    """QR code (error level H) for the verification URL."""
    widget = QrCodeWidget(url, barLevel="H")
    x0, y0, x1, y1 = widget.getBounds()
    drawing = Drawing(size, size, transform=[size / (x1 - x0), 0, 0, size / (y1 - y0), 0, 0])
    drawing.add(widget)
    return drawing


def _add_header(story, styles, doc: EvidenceDocument):
    story.append(Paragraph("Payout Audit Certificate", styles["title"]))
    story.append(Paragraph(
        f"{_text(doc.kind.value.replace('_', ' ').title())}  |  "
        f"Challenge {_text(doc.challenge_id)}  |  Generated {_stamp(doc.generated_at)}",
        styles["subtitle"],
    ))
    story.append(HRFlowable(width="100%", thickness=1.5, color=PRIMARY, spaceAfter=12))


def _add_overview(story, styles, doc: EvidenceDocument):
    story.append(Paragraph("Challenge Overview", styles["section"]))
    rows = [
        ("Title", doc.title),
        ("Bounty", doc.bounty_amount),
        ("Status", doc.status),
        ("Project Leader", doc.project_leader or "N/A"),
        ("Created", _stamp(doc.challenge_created_at)),
    ]
    table = Table(
        [[Paragraph(f"<b>{_text(k)}</b>", styles["cell"]), Paragraph(_text(v), styles["cell"])] for k, v in rows],
        colWidths=[1.6 * inch, 5.4 * inch],
    )
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (0, -1), HEADER_BG),
        ("BOX", (0, 0), (-1, -1), 0.5, BORDER),
        ("INNERGRID", (0, 0), (-1, -1), 0.5, BORDER),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    story.append(table)

    if doc.incomplete_sections:
        missing = ", ".join(SECTION_TITLES.get(s, s) for s in doc.incomplete_sections)
        story.append(Spacer(1, 6))
        story.append(Paragraph(
            f"Incomplete: the following sections could not be retrieved and are omitted: {_text(missing)}",
            styles["notice"],
        ))


def _add_payouts(story, styles, doc: EvidenceDocument):
    if doc.payout_rows is None:
        return
    story.append(Paragraph(SECTION_TITLES["payout_table"], styles["section"]))
    if not doc.payout_rows:
        story.append(Paragraph("No contributions recorded.", styles["body"]))
        return
    rows = [_header_row(styles, "Contributor", "Type", "Weight", "Share", "Payout")]
    for row in doc.payout_rows:
        rows.append([
            Paragraph(_text(row.contributor_id), styles["cell"]),
            Paragraph(_text(", ".join(row.contribution_types)), styles["cell"]),
            Paragraph(_text(row.declared_weight), styles["cell"]),
            Paragraph(_text(row.percentage), styles["cell"]),
            Paragraph(_text(row.amount), styles["cell"]),
        ])
    story.append(_grid(rows, [2.2 * inch, 1.5 * inch, 1.0 * inch, 1.0 * inch, 1.3 * inch]))


def _add_checklist(story, styles, doc: EvidenceDocument):
    story.append(Paragraph("Compliance Checklist", styles["section"]))
    for item in doc.checklist:
        mark = "PASS" if item.passed else "FAIL"
        line = f"[{mark}] {_text(item.label)}"
        if item.detail:
            line += f" - {_text(item.detail)}"
        story.append(Paragraph(line, styles["pass" if item.passed else "fail"]))


def _add_fairness(story, styles, doc: EvidenceDocument):
    if doc.fairness is None:
        return
    f = doc.fairness
    block = [
        Paragraph(SECTION_TITLES["fairness_analysis"], styles["section"]),
        Paragraph(f"Audited: {_stamp(f.audited_at)}", styles["body"]),
        Paragraph(f"Gini Coefficient: {f.gini_coefficient:.2f}", styles["body"]),
        Paragraph(f"Fairness Score: {f.fairness_score:.2f}/1.00", styles["body"]),
    ]
    for flag in f.red_flags:
        block.append(Paragraph(f"[RED] {_text(flag)}", styles["fail"]))
    for flag in f.green_flags:
        block.append(Paragraph(f"[GREEN] {_text(flag)}", styles["pass"]))
    for text in f.recommendations:
        block.append(Paragraph(f"- {_text(text)}", styles["body"]))
    story.append(KeepTogether(block))


def _add_timeline(story, styles, doc: EvidenceDocument):
    if doc.timeline is None:
        return
    story.append(Paragraph(SECTION_TITLES["timeline"], styles["section"]))
    if not doc.timeline:
        story.append(Paragraph("No events recorded.", styles["body"]))
        return
    rows = [_header_row(styles, "Timestamp", "Action", "Actor")]
    for row in doc.timeline:
        rows.append([
            Paragraph(_stamp(row.timestamp), styles["cell"]),
            Paragraph(_text(row.action), styles["cell"]),
            Paragraph(_text(row.actor or "system"), styles["cell"]),
        ])
    story.append(_grid(rows, [1.8 * inch, 2.6 * inch, 2.6 * inch]))


def _add_file_hashes(story, styles, doc: EvidenceDocument):
    if doc.file_hashes is None:
        return
    story.append(Paragraph(SECTION_TITLES["file_hashes"], styles["section"]))
    if not doc.file_hashes:
        story.append(Paragraph("No files attached.", styles["body"]))
        return
    rows = [_header_row(styles, "File", "SHA-256")]
    for row in doc.file_hashes:
        rows.append([
            Paragraph(_text(row.filename), styles["cell"]),
            Paragraph(_text(row.sha256), styles["mono"]),
        ])
    story.append(_grid(rows, [2.4 * inch, 4.6 * inch]))


def _add_signatures(story, styles, doc: EvidenceDocument):
    if doc.signatures is None:
        return
    story.append(Paragraph(SECTION_TITLES["signatures"], styles["section"]))
    if not doc.signatures:
        story.append(Paragraph("No composition manifest on record.", styles["body"]))
        return
    rows = [_header_row(styles, "Contributor", "Type", "Weight", "Reference", "Signed")]
    for row in doc.signatures:
        rows.append([
            Paragraph(_text(row.contributor_id), styles["cell"]),
            Paragraph(_text(row.contribution_type), styles["cell"]),
            Paragraph(f"{row.weight * 100:.1f}%", styles["cell"]),
            Paragraph(_text(row.reference or "-"), styles["mono"]),
            Paragraph(_stamp(row.signed_at) if row.signed_at else "unsigned", styles["cell"]),
        ])
    story.append(_grid(rows, [1.6 * inch, 1.0 * inch, 0.8 * inch, 2.1 * inch, 1.5 * inch]))


def _add_verification(story, styles, doc: EvidenceDocument):
    story.append(Paragraph("Verification", styles["section"]))
    details = [
        Paragraph("Scan the code or open the URL below to verify this document's integrity.", styles["body"]),
        Paragraph(f"<b>Reference:</b> {_text(doc.verification_reference)}", styles["body"]),
        Paragraph(f"<b>URL:</b> {_text(doc.verification_url)}", styles["body"]),
    ]
    table = Table([[qr_drawing(doc.verification_url), details]], colWidths=[QR_SIZE + 0.2 * inch, None])
    table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    story.append(KeepTogether([table]))


def _add_footer(story, styles, doc: EvidenceDocument):
    story.append(Spacer(1, 24))
    story.append(HRFlowable(width="100%", thickness=0.5, color=BORDER, spaceAfter=6))
    story.append(Paragraph(
        "Findings in this document are advisory. The SHA-256 of this file is recorded at "
        "generation time; any modification invalidates verification.",
        styles["footer"],
    ))


def render_pdf(doc: EvidenceDocument) -> bytes:
    """Render an evidence document to PDF bytes."""
    styles = _build_styles()
    story: list = []

    _add_header(story, styles, doc)
    _add_overview(story, styles, doc)
    _add_payouts(story, styles, doc)
    _add_checklist(story, styles, doc)
    _add_fairness(story, styles, doc)
    _add_timeline(story, styles, doc)
    _add_file_hashes(story, styles, doc)
    _add_signatures(story, styles, doc)
    _add_verification(story, styles, doc)
    _add_footer(story, styles, doc)

    buffer = io.BytesIO()
    template = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.6 * inch,
        title=f"Payout Audit - {doc.challenge_id}",
        author="Payout Fairness Audit Engine",
    )
    template.build(story)

    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes
