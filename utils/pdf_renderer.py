# pdf_renderer.py
import io
import logging
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.colors import Color, HexColor, toColor
from reportlab.lib.enums import TA_JUSTIFY, TA_LEFT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer

from utils.errors import DocumentRenderError
from utils.records import FormattedReport, PipelineStage, ReportSection, ReportStyling

logger = logging.getLogger("pdf_renderer")

MARGIN = 50
PLACEHOLDER_COLOR = HexColor("#6b7280")

# base font -> bold face, limited to the standard PDF fonts
BOLD_FACES = {
    "Helvetica": "Helvetica-Bold",
    "Times-Roman": "Times-Bold",
    "Courier": "Courier-Bold",
}

FONT_ALIASES = {
    "helvetica": "Helvetica",
    "arial": "Helvetica",
    "sans-serif": "Helvetica",
    "inter": "Helvetica",
    "times": "Times-Roman",
    "times-roman": "Times-Roman",
    "times new roman": "Times-Roman",
    "georgia": "Times-Roman",
    "serif": "Times-Roman",
    "courier": "Courier",
    "courier new": "Courier",
    "monospace": "Courier",
}


def resolve_font(fonts) -> str:
    """First styling font that maps onto a standard PDF font; Helvetica otherwise."""
    for name in fonts or ():
        resolved = FONT_ALIASES.get(str(name).strip().lower())
        if resolved:
            return resolved
    return "Helvetica"


def resolve_color(colors) -> Optional[Color]:
    for value in colors or ():
        try:
            return toColor(str(value).strip())
        except (ValueError, TypeError):
            continue
    return None


def resolve_pagesize(layouts):
    for layout in layouts or ():
        if "landscape" in str(layout).lower():
            return landscape(A4)
    return A4


def _markup(text: str) -> str:
    return escape(text or "").replace("\n", "<br/>")


def build_styles(styling: ReportStyling) -> Dict[str, ParagraphStyle]:
    base_font = resolve_font(styling.fonts)
    heading_color = resolve_color(styling.colors)
    sample = getSampleStyleSheet()

    heading_kwargs: Dict[str, Any] = {}
    if heading_color is not None:
        heading_kwargs["textColor"] = heading_color

    return {
        "heading": ParagraphStyle(
            "SectionHeading",
            parent=sample["Heading1"],
            fontName=BOLD_FACES[base_font],
            fontSize=24,
            leading=29,
            alignment=TA_LEFT,
            spaceAfter=14,
            **heading_kwargs,
        ),
        "body": ParagraphStyle(
            "SectionBody",
            parent=sample["BodyText"],
            fontName=base_font,
            fontSize=12,
            leading=16,
            alignment=TA_JUSTIFY,
            spaceAfter=12,
        ),
        "placeholder": ParagraphStyle(
            "SectionPlaceholder",
            parent=sample["BodyText"],
            fontName=base_font,
            fontSize=9,
            leading=12,
            textColor=PLACEHOLDER_COLOR,
        ),
    }


def section_flowables(section: ReportSection, styles: Dict[str, ParagraphStyle]) -> List[Any]:
    """
    Heading, justified body, then one placeholder line per visualization and
    table reference (charts and tables are drawn by the web view, not here).
    """
    flow: List[Any] = [
        Paragraph(_markup(section.title), styles["heading"]),
        Paragraph(_markup(section.content), styles["body"]),
    ]
    refs = [("Visualization", v) for v in section.visualizations] + [("Table", t) for t in section.tables]
    if refs:
        flow.append(Spacer(1, 6))
        for kind, ref in refs:
            flow.append(Paragraph(f"[{kind}: {_markup(ref)}]", styles["placeholder"]))
    flow.append(PageBreak())
    return flow


def build_story(report: FormattedReport) -> List[Any]:
    styles = build_styles(report.styling)
    story: List[Any] = []
    for section in report.sections:
        story.extend(section_flowables(section, styles))
    return story


def render_report_pdf(report: FormattedReport, title: str = "Marketing Plan") -> bytes:
    """
    Render a validated FormattedReport to PDF bytes: one section per page,
    bold heading followed by justified body text. Output is invariant
    (no timestamps or random ids), so identical reports give identical bytes.
    """
    try:
        buf = io.BytesIO()
        doc = SimpleDocTemplate(
            buf,
            pagesize=resolve_pagesize(report.styling.layouts),
            leftMargin=MARGIN,
            rightMargin=MARGIN,
            topMargin=MARGIN,
            bottomMargin=MARGIN,
            title=title,
            invariant=1,
        )
        story = build_story(report)
        if not story:
            story = [Spacer(1, 1)]
        doc.build(story)
    except Exception as e:
        logger.exception("PDF rendering failed: %s", e)
        raise DocumentRenderError(f"PDF rendering failed: {e}", stage=PipelineStage.RENDERING_DOCUMENT) from e

    pdf = buf.getvalue()
    logger.info("rendered %d sections into %d byte PDF", len(report.sections), len(pdf))
    return pdf
