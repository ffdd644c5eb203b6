"""
Evidence engines - document assembly and PDF rendering.
"""

from bounty_audit.engines.evidence.document import (
    assemble_document,
    build_checklist,
    build_fairness_section,
    build_file_hashes,
    build_payout_rows,
    build_signatures,
    build_timeline,
)
from bounty_audit.engines.evidence.pdf_renderer import qr_drawing, render_pdf

__all__ = [
    "assemble_document",
    "build_checklist",
    "build_fairness_section",
    "build_file_hashes",
    "build_payout_rows",
    "build_signatures",
    "build_timeline",
    "qr_drawing",
    "render_pdf",
]
