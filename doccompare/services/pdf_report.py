"""Renders a completed comparison as a PDF report with reportlab."""

import io
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from doccompare.database.models import Comparison, Document

_IMPORTANCE_ORDER = {"high": 0, "medium": 1, "low": 2}


def render_comparison_pdf(
    comparison: Comparison, document1: Document, document2: Document
) -> bytes:
    styles = getSampleStyleSheet()
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        title=f"Comparison {comparison.id}",
        leftMargin=18 * mm,
        rightMargin=18 * mm,
    )

    story = [
        Paragraph(f"Document comparison #{comparison.id}", styles["Title"]),
        Paragraph(f"Standard: {escape(document1.original_name)}", styles["Normal"]),
        Paragraph(f"Compared: {escape(document2.original_name)}", styles["Normal"]),
    ]
    if comparison.similarity_score is not None:
        story.append(
            Paragraph(f"Similarity score: {comparison.similarity_score:.2f} / 100", styles["Normal"])
        )
    story += [
        Spacer(1, 6 * mm),
        Paragraph("Summary", styles["Heading2"]),
        Paragraph(escape(comparison.comparison_summary or "No summary."), styles["BodyText"]),
        Spacer(1, 6 * mm),
        Paragraph("Key differences", styles["Heading2"]),
    ]

    differences = sorted(
        comparison.key_differences or [],
        key=lambda d: _IMPORTANCE_ORDER.get(d.get("importance", ""), 3),
    )
    if not differences:
        story.append(Paragraph("No differences recorded.", styles["BodyText"]))
    else:
        cell = styles["BodyText"]
        rows = [["Section", "Type", "Importance", "Explanation"]]
        for difference in differences:
            rows.append(
                [
                    Paragraph(escape(str(difference.get("section", ""))), cell),
                    difference.get("type", ""),
                    difference.get("importance", ""),
                    Paragraph(escape(str(difference.get("explanation", ""))), cell),
                ]
            )
        table = Table(rows, colWidths=[35 * mm, 22 * mm, 22 * mm, 95 * mm], repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ]
            )
        )
        story.append(table)

    doc.build(story)
    return buf.getvalue()
