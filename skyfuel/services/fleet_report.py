"""
SkyFuel Battery Ledger - Fleet Report Generator
Version: 1.0.1

Changelog:
v1.0.1 (2026-10-20): Battery and alert text is escaped before it reaches
                      Paragraph markup
v1.0.0 (2026-10-17): PDF fleet report - status summary, health buckets,
                      cycle chart, active alerts
"""

import io
import logging
from datetime import date
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, Image
)
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.lib import colors
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from ..config import settings
from ..models.statistics import BatteryAlert, BatteryStatistics

logger = logging.getLogger(__name__)

_TABLE_STYLE = TableStyle([
    ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ('BACKGROUND', (0, 0), (-1, 0), colors.Color(0.9, 0.9, 0.9)),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('FONTSIZE', (0, 0), (-1, -1), 9),
    ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ('LEFTPADDING', (0, 0), (-1, -1), 6),
])


def _cycles_chart(stats: BatteryStatistics) -> Optional[io.BytesIO]:
    """Bar chart of mean cycle count per brand, as PNG"""
    if not stats.cycles_by_brand:
        return None

    brands = sorted(stats.cycles_by_brand)
    means = [stats.cycles_by_brand[brand] for brand in brands]

    fig, ax = plt.subplots(figsize=(7, 3))
    positions = range(len(brands))
    ax.bar(positions, means, color='tab:blue')
    ax.set_xticks(list(positions))
    # Literal dollar signs, not mathtext
    ax.set_xticklabels([brand.replace('$', r'\$') for brand in brands])
    ax.axhline(stats.max_cycles * 0.5, color='orange', linestyle='--', linewidth=0.8,
               label='warning')
    ax.axhline(stats.max_cycles * 0.8, color='red', linestyle='--', linewidth=0.8,
               label='critical')
    ax.set_ylabel('Mean cycles')
    ax.grid(True, axis='y', alpha=0.3)
    ax.legend(loc='upper right', fontsize=8)
    plt.tight_layout()

    png = io.BytesIO()
    fig.savefig(png, format='png', dpi=150)
    plt.close(fig)
    png.seek(0)
    return png


def render_fleet_report(stats: BatteryStatistics, alerts: Sequence[BatteryAlert],
                        today: date) -> bytes:
    """Build the fleet report PDF and return its bytes"""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4,
                            topMargin=0.5*inch, bottomMargin=0.5*inch,
                            title="SkyFuel fleet report")
    styles = getSampleStyleSheet()
    story = []

    story.append(Paragraph("<b>Battery Fleet Report</b>", styles['Title']))
    story.append(Paragraph(
        f"{settings.APP_NAME} v{settings.APP_VERSION} &middot; {today.isoformat()}",
        styles['Normal']))
    story.append(Spacer(1, 0.2 * inch))

    # -- Status summary --
    story.append(Paragraph("<b>Status</b>", styles['Heading2']))
    status_rows = [
        ["Status", "Count", "Share"],
        ["Charged", stats.charged_count, f"{stats.charged_percentage():.0f}%"],
        ["Discharged", stats.discharged_count, f"{stats.discharged_percentage():.0f}%"],
        ["Storage", stats.storage_count, f"{stats.storage_percentage():.0f}%"],
        ["Out of service", stats.out_of_service_count,
         f"{stats.out_of_service_percentage():.0f}%"],
        ["Total", stats.total_count, ""],
    ]
    table = Table(status_rows, colWidths=[2.2*inch, 1*inch, 1*inch])
    table.setStyle(_TABLE_STYLE)
    story.append(table)
    story.append(Spacer(1, 0.2 * inch))

    # -- Health buckets --
    story.append(Paragraph(
        f"<b>Health</b> (max {stats.max_cycles} cycles)", styles['Heading2']))
    health_rows = [
        ["Healthy", "Warning", "Critical", "Mean cycles"],
        [stats.healthy_count, stats.warning_count, stats.critical_count,
         f"{stats.average_cycle_count:.1f}"],
    ]
    table = Table(health_rows, colWidths=[1.3*inch] * 4)
    table.setStyle(_TABLE_STYLE)
    story.append(table)

    if stats.most_used_battery is not None:
        most_used = stats.most_used_battery
        story.append(Spacer(1, 0.1 * inch))
        story.append(Paragraph(
            f"Most used: {escape(most_used.display_name)} ({escape(most_used.serial_number)}), "
            f"{most_used.cycle_count} cycles", styles['Normal']))
    if stats.oldest_battery is not None:
        oldest = stats.oldest_battery
        story.append(Paragraph(
            f"Oldest: {escape(oldest.display_name)} ({escape(oldest.serial_number)}), "
            f"bought {oldest.purchase_date.isoformat()}", styles['Normal']))
    story.append(Spacer(1, 0.2 * inch))

    chart = _cycles_chart(stats)
    if chart is not None:
        story.append(Paragraph("<b>Cycles by brand</b>", styles['Heading2']))
        story.append(Image(chart, width=7*inch, height=3*inch))
        story.append(Spacer(1, 0.2 * inch))

    # -- Alerts --
    story.append(Paragraph("<b>Active alerts</b>", styles['Heading2']))
    if alerts:
        alert_rows = [["Priority", "Battery", "Alert"]]
        for alert in alerts:
            alert_rows.append([alert.priority.name, alert.battery_name,
                               Paragraph(escape(alert.message), styles['Normal'])])
        table = Table(alert_rows, colWidths=[0.9*inch, 1.8*inch, 4.3*inch])
        table.setStyle(_TABLE_STYLE)
        story.append(table)
    else:
        story.append(Paragraph("No active alerts.", styles['Normal']))

    doc.build(story)
    logger.info(f"Fleet report rendered: {stats.total_count} batteries, {len(alerts)} alerts")
    return buffer.getvalue()
