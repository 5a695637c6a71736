"""
Report export helpers: Markdown text or PDF bytes for a composed report.

Both renderers are pure functions of the report.

Dependencies
------------
- reportlab  (PDF generation)
"""

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from api.models.report import SOAP_SECTIONS, EducationalContent, Report

DISCLAIMER = (
    "This report was produced in an educational exercise. It is NOT a clinical "
    "record and must NOT be used as a substitute for professional medical advice."
)

# (attribute, heading) in display order
EDUCATION_SECTIONS = (
    ("pathophysiology", "Pathophysiology"),
    ("risk_factors", "Risk Factors"),
    ("diagnostic_criteria", "Diagnostic Criteria"),
    ("treatment", "Treatment"),
    ("complications", "Complications"),
    ("prognosis", "Prognosis"),
    ("pearls", "Clinical Pearls"),
    ("references", "References"),
)


def _education_items(content: EducationalContent):
    for attribute, heading in EDUCATION_SECTIONS:
        value = getattr(content, attribute)
        if value:
            yield heading, value


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def render_markdown(report: Report) -> str:
    """Render a report as Markdown."""
    lines = [f"# {report.title}", "", f"**Status:** {report.status.value}", ""]

    lines.append("## SOAP Note")
    for section in SOAP_SECTIONS:
        lines += ["", f"### {section.capitalize()}", "", getattr(report.soap, section) or "_Empty_"]

    education = list(_education_items(report.educational_content))
    if education:
        lines += ["", "## Educational Content"]
        for heading, value in education:
            lines += ["", f"### {heading}", ""]
            if isinstance(value, list):
                lines += [f"- {item}" for item in value]
            else:
                lines.append(value)

    if report.learner_notes:
        lines += ["", "## Learner Notes", "", report.learner_notes]

    lines += ["", "---", "", f"_{DISCLAIMER}_", ""]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# PDF export
# ---------------------------------------------------------------------------


def _paragraph_text(text: str) -> str:
    return escape(text).replace("\n", "<br/>")


def render_pdf(report: Report) -> bytes:
    """Render a report as PDF bytes using reportlab."""
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=LETTER,
        leftMargin=inch,
        rightMargin=inch,
        topMargin=inch,
        bottomMargin=inch,
        title=report.title,
        invariant=1,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Title"],
        fontSize=18,
        textColor=colors.HexColor("#1a3a5c"),
        spaceAfter=6,
    )
    heading_style = ParagraphStyle(
        "ReportHeading",
        parent=styles["Heading2"],
        fontSize=12,
        textColor=colors.HexColor("#1a3a5c"),
        spaceBefore=12,
        spaceAfter=4,
    )
    normal = styles["Normal"]
    small = ParagraphStyle("Small", parent=normal, fontSize=8, textColor=colors.grey)

    story = [
        Paragraph(_paragraph_text(report.title), title_style),
        Paragraph(f"Status: {report.status.value}", small),
        Spacer(1, 0.15 * inch),
    ]

    # ---- SOAP table ----
    story.append(Paragraph("SOAP Note", heading_style))
    soap_rows = [["Section", "Content"]] + [
        [section.capitalize(), Paragraph(_paragraph_text(getattr(report.soap, section)), normal)]
        for section in SOAP_SECTIONS
    ]
    soap_table = Table(soap_rows, colWidths=[1.3 * inch, 5.2 * inch])
    soap_table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1a3a5c")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f0f4f8")]),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#cccccc")),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ])
    )
    story.append(soap_table)

    # ---- Educational content ----
    for heading, value in _education_items(report.educational_content):
        story.append(Paragraph(heading, heading_style))
        if isinstance(value, list):
            for item in value:
                story.append(Paragraph(f"&bull; {_paragraph_text(item)}", normal))
        else:
            story.append(Paragraph(_paragraph_text(value), normal))

    if report.learner_notes:
        story.append(Paragraph("Learner Notes", heading_style))
        story.append(Paragraph(_paragraph_text(report.learner_notes), normal))

    # ---- Disclaimer ----
    story.append(Spacer(1, 0.3 * inch))
    story.append(Paragraph(DISCLAIMER, small))

    doc.build(story)
    return buf.getvalue()
