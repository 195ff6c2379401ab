"""
Document assembly: PNG figures and the PDF that interleaves them with
the narrative text.
"""

import logging
from pathlib import Path

import matplotlib.pyplot as plt
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image as RLImage
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer

logger = logging.getLogger(__name__)


def save_figure(fig, outdir, name):
    """Write ``fig`` to ``outdir/name`` as PNG, close it, return the path."""
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    path = outdir / name
    fig.savefig(path, bbox_inches="tight", dpi=150)
    plt.close(fig)
    logger.debug("Saved figure %s", path)
    return path


def _escape(line):
    # reportlab paragraphs are XML
    return line.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _styles():
    styles = getSampleStyleSheet()
    heading = ParagraphStyle(
        "Heading", parent=styles["Title"], fontSize=18, leading=22, spaceAfter=6,
    )
    subtitle = ParagraphStyle(
        "Subtitle", parent=styles["Normal"], fontName="Helvetica", fontSize=10,
        leading=13, spaceAfter=20, textColor="#555555",
    )
    title = ParagraphStyle(
        "SectionTitle", parent=styles["Heading2"], fontSize=13, leading=16,
        spaceAfter=8,
    )
    code = ParagraphStyle(
        "Code", parent=styles["Normal"], fontName="Courier", fontSize=8.5,
        leading=10.5,
    )
    return styles, heading, subtitle, title, code


def build_pdf(sections, pdf_path, title, subtitle="", intro_lines=()):
    """
    Render the tutorial document.

    Parameters
    ----------
    sections : list of (str, path or None)
        Section text (first line is the section title) and the figure
        that follows it on its own page.
    pdf_path : path
        Output file.
    title, subtitle : str
        Cover page heading.
    intro_lines : iterable of str
        Cover page text; empty strings become vertical space.

    Returns
    -------
    Path of the written PDF.
    """
    pdf_path = Path(pdf_path)
    pdf_path.parent.mkdir(parents=True, exist_ok=True)
    doc = SimpleDocTemplate(str(pdf_path), pagesize=letter,
                            leftMargin=0.75 * inch, rightMargin=0.75 * inch,
                            topMargin=0.75 * inch, bottomMargin=0.75 * inch)
    styles, heading_style, subtitle_style, title_style, code_style = _styles()

    story = [Paragraph(_escape(title), heading_style)]
    if subtitle:
        story.append(Paragraph(_escape(subtitle), subtitle_style))
    story.append(Spacer(1, 12))
    for line in intro_lines:
        if line == "":
            story.append(Spacer(1, 6))
        else:
            story.append(Paragraph(_escape(line), styles["Normal"]))
    story.append(PageBreak())

    page_w = letter[0] - 1.5 * inch
    max_h = letter[1] - 1.5 * inch
    for sec_text, fig_path in sections:
        lines = sec_text.strip().split("\n")
        story.append(Paragraph(_escape(lines[0]), title_style))
        for line in lines[1:]:
            if line.strip() == "":
                story.append(Spacer(1, 6))
            else:
                # keep indentation in the monospace block
                story.append(Paragraph(_escape(line).replace("  ", "&nbsp;&nbsp;"),
                                       code_style))
        story.append(PageBreak())

        if fig_path is None:
            continue
        with Image.open(fig_path) as img:
            iw, ih = img.size
        aspect = ih / iw
        display_w = page_w
        display_h = display_w * aspect
        if display_h > max_h:
            display_h = max_h
            display_w = display_h / aspect
        story.append(RLImage(str(fig_path), width=display_w, height=display_h))
        story.append(PageBreak())

    doc.build(story)
    logger.info("Wrote %s (%d sections)", pdf_path, len(sections))
    return pdf_path
