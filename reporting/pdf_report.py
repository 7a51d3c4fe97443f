"""PDF session summary generation using ReportLab."""

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence

from reportlab.graphics.charts.lineplots import LinePlot
from reportlab.graphics.shapes import Drawing, String
from reportlab.graphics.widgets.markers import makeMarker
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)

import config
from tracking.analytics import format_duration, sort_samples, summarise_samples
from tracking.session import MetricSample

logger = logging.getLogger(__name__)

NO_DATA_TEXT = "No focus data recorded"

# Score axis is fixed so charts from different sessions compare directly
SCORE_MIN = 0
SCORE_MAX = 100


def _add_gradient_background(canvas_obj, doc):
    """
    Paint a blue gradient that fades from the top of the page to the middle.

    Args:
        canvas_obj: ReportLab canvas object
        doc: Document object
    """
    canvas_obj.saveState()

    width, height = letter
    gradient_color = colors.HexColor('#B8D5E8')

    num_steps = 50
    gradient_height = height * 0.5
    step_height = gradient_height / num_steps

    for i in range(num_steps):
        alpha = 1 - (i / num_steps)
        color = colors.Color(
            gradient_color.red,
            gradient_color.green,
            gradient_color.blue,
            alpha=alpha * 0.9
        )
        canvas_obj.setFillColor(color)
        y_pos = height - (i * step_height)
        canvas_obj.rect(0, y_pos - step_height, width, step_height, fill=1, stroke=0)

    canvas_obj.restoreState()


def _safe_filename(label: str) -> str:
    """
    Turn a session label into a filesystem-safe file stem.

    Examples:
        >>> _safe_filename("FocusFy Monday 2.45PM")
        "FocusFy_Monday_2.45PM"
    """
    stem = re.sub(r'[^A-Za-z0-9._-]+', '_', label).strip('._')
    return stem or "focus_session"


def _format_clock_label(origin: datetime):
    """Build an x-axis label formatter showing wall-clock HH:MM:SS."""
    def _label(value: float) -> str:
        return (origin + timedelta(seconds=value)).strftime("%H:%M:%S")
    return _label


def build_score_chart(
    samples: Sequence[MetricSample],
    width: float = 6.0 * inch,
    height: float = 3.0 * inch
) -> Drawing:
    """
    Create a line chart of focus score over the session.

    x is the wall-clock time of each sample, y is the score on a fixed 0-100
    range. Samples are sorted by timestamp before plotting. An empty series
    produces the axes with a flat baseline and a "no data" label.

    Args:
        samples: Recorded samples, in any order
        width: Drawing width in points
        height: Drawing height in points

    Returns:
        ReportLab Drawing containing the chart
    """
    ordered = sort_samples(samples)
    drawing = Drawing(width, height)

    plot = LinePlot()
    plot.x = 45
    plot.y = 35
    plot.width = width - 65
    plot.height = height - 55

    plot.yValueAxis.valueMin = SCORE_MIN
    plot.yValueAxis.valueMax = SCORE_MAX
    plot.yValueAxis.valueStep = 20
    plot.yValueAxis.labels.fontName = 'Times-Roman'
    plot.yValueAxis.labels.fontSize = 9
    plot.xValueAxis.labels.fontName = 'Times-Roman'
    plot.xValueAxis.labels.fontSize = 8
    plot.xValueAxis.valueMin = 0

    if ordered:
        origin_ms = ordered[0].timestamp
        points = [((s.timestamp - origin_ms) / 1000.0, s.score) for s in ordered]
        span = points[-1][0]
        # A single sample still needs a non-zero axis span
        plot.xValueAxis.valueMax = span if span > 0 else 1
        plot.xValueAxis.labelTextFormat = _format_clock_label(ordered[0].recorded_at)
        plot.xValueAxis.labels.angle = 30
        plot.xValueAxis.labels.boxAnchor = 'ne'
        plot.data = [points]
        plot.lines[0].strokeColor = colors.HexColor('#4A90E2')
        plot.lines[0].strokeWidth = 2
        plot.lines[0].symbol = makeMarker('FilledCircle')
        plot.lines[0].symbol.size = 3
        plot.lines[0].symbol.fillColor = colors.HexColor('#2C3E50')
    else:
        plot.xValueAxis.valueMax = 1
        plot.xValueAxis.visibleLabels = 0
        plot.data = [[(0, SCORE_MIN), (1, SCORE_MIN)]]
        plot.lines[0].strokeColor = colors.HexColor('#E0E6ED')
        plot.lines[0].strokeWidth = 1

    drawing.add(plot)

    if not ordered:
        drawing.add(String(
            plot.x + plot.width / 2,
            plot.y + plot.height / 2,
            NO_DATA_TEXT,
            fontName='Times-Italic',
            fontSize=12,
            fillColor=colors.HexColor('#7F8C8D'),
            textAnchor='middle'
        ))

    return drawing


def generate_report(
    samples: Sequence[MetricSample],
    session_label: str,
    start_time: datetime,
    end_time: Optional[datetime] = None,
    output_dir: Optional[Path] = None,
    focus_seconds: Optional[int] = None
) -> Path:
    """
    Generate a PDF summary for a finished focus session.

    Contains the title, a date/time subtitle, a summary table and the score
    chart. An empty sample list produces a valid report with a "no data" chart.

    Args:
        samples: Fetched sample series (any order)
        session_label: Display name, also used for the file name
        start_time: Session start time
        end_time: Session end time (optional)
        output_dir: Output directory (defaults to config.REPORTS_DIR)
        focus_seconds: Time credited to the session, if known

    Returns:
        Path to the generated PDF file
    """
    if output_dir is None:
        output_dir = config.REPORTS_DIR
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    filepath = output_dir / f"{_safe_filename(session_label)}.pdf"

    doc = SimpleDocTemplate(
        str(filepath),
        pagesize=letter,
        rightMargin=60,
        leftMargin=60,
        topMargin=45,
        bottomMargin=60
    )

    story: List = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontName='Times-Bold',
        fontSize=28,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=20,
        spaceBefore=20,
        alignment=TA_LEFT,
        leading=34
    )

    subtitle_style = ParagraphStyle(
        'Subtitle',
        parent=styles['Normal'],
        fontName='Times-Italic',
        fontSize=12,
        textColor=colors.HexColor('#7F8C8D'),
        spaceAfter=30,
        alignment=TA_LEFT
    )

    heading_style = ParagraphStyle(
        'CustomHeading',
        parent=styles['Heading2'],
        fontName='Times-Bold',
        fontSize=18,
        textColor=colors.HexColor('#34495E'),
        spaceAfter=20,
        spaceBefore=20,
        alignment=TA_LEFT,
        leading=24
    )

    story.append(Paragraph(session_label, title_style))

    # Subtitle: date and time range
    date_str = start_time.strftime("%B %d, %Y")
    start_time_str = start_time.strftime("%I:%M%p").lstrip('0')
    end_time_str = (end_time or start_time).strftime("%I:%M%p").lstrip('0')
    story.append(Paragraph(f"{date_str} from {start_time_str} - {end_time_str}", subtitle_style))

    # ===== Summary table =====
    story.append(Paragraph("Summary Statistics", heading_style))

    summary = summarise_samples(samples)
    if focus_seconds is None and end_time is not None:
        focus_seconds = int((end_time - start_time).total_seconds())

    def _score(value: Optional[float]) -> str:
        return "-" if value is None else f"{round(value)}"

    stats_data = [
        ['Metric', 'Value'],
        ['Focus Time', format_duration(focus_seconds or 0)],
        ['Samples', str(summary['count'])],
        ['Average Score', _score(summary['average'])],
        ['Lowest Score', _score(summary['minimum'])],
        ['Highest Score', _score(summary['maximum'])],
    ]

    stats_table = Table(stats_data, colWidths=[3.0 * inch, 3.0 * inch])
    stats_table.setStyle(TableStyle([
        # Header row
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#4A90E2')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, 0), 'Times-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 13),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('TOPPADDING', (0, 0), (-1, 0), 12),
        # Data rows
        ('BACKGROUND', (0, 1), (-1, -1), colors.HexColor('#F8FAFB')),
        ('FONTNAME', (0, 1), (-1, -1), 'Times-Roman'),
        ('FONTSIZE', (0, 1), (-1, -1), 11),
        ('TOPPADDING', (0, 1), (-1, -1), 10),
        ('BOTTOMPADDING', (0, 1), (-1, -1), 10),
        ('LINEBELOW', (0, 1), (-1, -2), 0.5, colors.HexColor('#E0E6ED')),
        ('TEXTCOLOR', (0, 1), (-1, -1), colors.HexColor('#2C3E50')),
        # Average score stands out
        ('FONTNAME', (0, 3), (-1, 3), 'Times-Bold'),
    ]))
    story.append(stats_table)

    # ===== Score chart =====
    story.append(Spacer(1, 0.4 * inch))
    story.append(Paragraph("Focus Over Time", heading_style))
    story.append(build_score_chart(samples))

    story.append(Spacer(1, 0.5 * inch))

    footer_style = ParagraphStyle(
        'Footer',
        parent=styles['Normal'],
        fontName='Times-Italic',
        fontSize=9,
        textColor=colors.HexColor('#95A5A6'),
        alignment=TA_CENTER
    )
    story.append(Paragraph("Generated by FocusFy", footer_style))

    try:
        doc.build(story, onFirstPage=_add_gradient_background, onLaterPages=_add_gradient_background)
        logger.info(f"PDF report generated: {filepath}")
        return filepath
    except Exception as e:
        logger.error(f"Error generating PDF: {e}")
        raise
