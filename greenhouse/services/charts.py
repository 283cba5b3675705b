"""
Charts Service - server-side PNG charts of history and forecasts
Uses matplotlib + seaborn; long series are downsampled before plotting
"""

import matplotlib
matplotlib.use('Agg')  # Headless mode - must be before pyplot import

import matplotlib.pyplot as plt
import matplotlib.dates as mdates
import seaborn as sns
from io import BytesIO
from zoneinfo import ZoneInfo

from greenhouse.models.records import ForecastPoint, Reading
from greenhouse.services.downsample import downsample

# Set seaborn style
sns.set_theme(style="whitegrid", palette="husl")

MAX_CHART_POINTS = 500

TEMP_COLOR = '#f59e0b'
AIR_HUMIDITY_COLOR = '#0ea5e9'
SOIL_HUMIDITY_COLOR = '#22c55e'


def generate_history_chart(
    readings: list[Reading],
    title: str,
    timezone: ZoneInfo,
    max_points: int = MAX_CHART_POINTS,
) -> BytesIO:
    """
    Temperature and humidity history as PNG.

    Args:
        readings: Readings ordered oldest first
        title: Chart title
        timezone: Zone for the time axis

    Returns:
        BytesIO buffer with PNG image
    """
    if not readings:
        return _generate_empty_chart("No sensor data for this period")

    sampled = downsample(readings, max_points)
    times = [r.timestamp.astimezone(timezone) for r in sampled]

    return _render(
        title,
        times,
        [r.temperature for r in sampled],
        [r.air_humidity for r in sampled],
        [r.soil_humidity for r in sampled],
        timezone,
    )


def generate_forecast_chart(
    points: list[ForecastPoint],
    title: str,
    timezone: ZoneInfo,
    max_points: int = MAX_CHART_POINTS,
) -> BytesIO:
    """Forecast curves as PNG."""
    if not points:
        return _generate_empty_chart("No forecast available")

    sampled = downsample(points, max_points)
    times = [p.timestamp.astimezone(timezone) for p in sampled]

    return _render(
        title,
        times,
        [p.predicted_temp for p in sampled],
        [p.predicted_air_humidity for p in sampled],
        [p.predicted_soil_humidity for p in sampled],
        timezone,
        linestyle='--',
    )


def _render(title, times, temps, air, soil, timezone: ZoneInfo, linestyle: str = '-') -> BytesIO:
    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 8), height_ratios=[1, 1], sharex=True)
    fig.suptitle(title, fontsize=14, fontweight='bold')

    # Temperature
    ax1.plot(times, temps, color=TEMP_COLOR, linewidth=2, linestyle=linestyle)
    ax1.fill_between(times, temps, min(temps) - 1, alpha=0.15, color=TEMP_COLOR)
    ax1.set_ylabel('Temperature (°C)', fontsize=11)

    # Air & soil humidity
    ax2.plot(times, air, color=AIR_HUMIDITY_COLOR, linewidth=2, linestyle=linestyle, label='Air humidity')
    ax2.plot(times, soil, color=SOIL_HUMIDITY_COLOR, linewidth=2, linestyle=linestyle, label='Soil humidity')
    ax2.set_ylabel('Humidity (%)', fontsize=11)
    ax2.legend(loc='upper right', fontsize=9)

    span_hours = (times[-1] - times[0]).total_seconds() / 3600 if len(times) > 1 else 0
    if span_hours > 48:
        ax2.xaxis.set_major_formatter(mdates.DateFormatter('%d.%m', tz=timezone))
    else:
        ax2.xaxis.set_major_formatter(mdates.DateFormatter('%H:%M', tz=timezone))
    plt.setp(ax2.xaxis.get_majorticklabels(), rotation=45, ha='right')

    stats_text = (
        f'Temperature: avg {sum(temps) / len(temps):.1f}°C | '
        f'max {max(temps):.1f}°C | min {min(temps):.1f}°C'
    )
    fig.text(0.5, 0.01, stats_text, ha='center', fontsize=10,
             bbox=dict(boxstyle='round', facecolor='white', alpha=0.8))

    plt.tight_layout(rect=[0, 0.03, 1, 0.97])

    return _to_png(fig, dpi=150)


def _generate_empty_chart(message: str) -> BytesIO:
    """Generate a simple chart with 'no data' message."""
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.text(0.5, 0.5, message, ha='center', va='center', fontsize=14, color='gray')
    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1)
    ax.axis('off')

    return _to_png(fig, dpi=100)


def _to_png(fig, dpi: int) -> BytesIO:
    buf = BytesIO()
    fig.savefig(buf, format='png', dpi=dpi, bbox_inches='tight',
                facecolor='white', edgecolor='none')
    buf.seek(0)
    plt.close(fig)

    return buf
