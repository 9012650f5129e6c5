"""
Quality Trend and Alert Monitoring.

Batch analysis of effectiveness scores over a monitoring window, compared with
the previous window. Runs from the scheduled quality alerts job, never on the
per-message path.

Outputs:
- QualityMonitoringMetrics: average score, response velocity (mean seconds
  until the customer replied), conversion rate, escalation rate and response
  miss rate (share of responses the customer never answered)
- QualityTrend: improving / declining / stable with the change in average score
- QualityAlert list:
    quality_decline    average dropped by at least the decline threshold
    performance_spike  average rose by at least twice the decline threshold
    anomaly_detected   scores whose z-score against the baseline window
                       exceeds the anomaly threshold

Statistics use numpy with population standard deviation (ddof=0).
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

import numpy as np

from conversation_intel.models.enums import (
    AlertSeverity,
    QualityAlertType,
    QualityTrendDirection,
)
from conversation_intel.models.schemas import (
    QualityAlert,
    QualityMonitoringMetrics,
    QualityMonitoringReport,
    QualityTrend,
    ResponseEffectivenessScore,
)


logger = logging.getLogger(__name__)


# Average-score change treated as noise
STABLE_BAND = 2.0
# Minimum baseline size for z-score anomaly detection
MIN_BASELINE = 5


def compute_metrics(scores: Sequence[ResponseEffectivenessScore]) -> QualityMonitoringMetrics:
    """Aggregate metrics for one window of scores."""
    if not scores:
        return QualityMonitoringMetrics()

    n = len(scores)
    overall = np.array([s.overallScore for s in scores], dtype=np.float64)
    response_times = [s.impact.responseTime for s in scores if s.impact.responseTime is not None]
    replied = sum(1 for s in scores if s.impact.customerReplied)

    return QualityMonitoringMetrics(
        sampleSize=n,
        averageResponseScore=round(float(np.mean(overall)), 2),
        responseVelocity=round(float(np.mean(response_times)), 2) if response_times else 0.0,
        conversionRate=round(sum(1 for s in scores if s.impact.converted) / n, 4),
        escalationRate=round(sum(1 for s in scores if s.impact.escalationRequired) / n, 4),
        responseMissRate=round(1.0 - replied / n, 4),
    )


def compute_trend(current_average: float, previous_average: Optional[float]) -> QualityTrend:
    if previous_average is None:
        return QualityTrend()
    change = round(current_average - previous_average, 2)
    if change > STABLE_BAND:
        direction = QualityTrendDirection.IMPROVING
    elif change < -STABLE_BAND:
        direction = QualityTrendDirection.DECLINING
    else:
        direction = QualityTrendDirection.STABLE
    return QualityTrend(direction=direction, performanceChange=change)


def decline_severity(drop: float, threshold: float) -> AlertSeverity:
    """Severity grows with the size of the drop relative to the threshold."""
    if drop >= 3 * threshold:
        return AlertSeverity.CRITICAL
    if drop >= 2 * threshold:
        return AlertSeverity.HIGH
    if drop >= threshold:
        return AlertSeverity.MEDIUM
    return AlertSeverity.LOW


def detect_anomalies(
    current: Sequence[float],
    baseline: Sequence[float],
    z_threshold: float,
) -> List[float]:
    """
    Values in `current` whose z-score against `baseline` exceeds the threshold.

    Returns an empty list when the baseline is too small or has no spread.
    """
    if len(baseline) < MIN_BASELINE or not current:
        return []
    base = np.array(baseline, dtype=np.float64)
    mean_val = float(np.mean(base))
    std_val = float(np.std(base))
    if std_val == 0:
        return []
    values = np.array(current, dtype=np.float64)
    z_scores = np.abs((values - mean_val) / std_val)
    return [float(v) for v, z in zip(values, z_scores) if z > z_threshold]


def monitor_quality(
    current: Sequence[ResponseEffectivenessScore],
    previous: Sequence[ResponseEffectivenessScore] = (),
    decline_threshold: float = 5.0,
    z_threshold: float = 2.0,
    now: Optional[datetime] = None,
) -> QualityMonitoringReport:
    """
    Metrics, trend and alerts for the current window.

    Args:
        current: Scores in the window being monitored.
        previous: Scores in the preceding window (baseline).
        decline_threshold: Average-score drop that raises quality_decline.
        z_threshold: Z-score that marks an individual score anomalous.
        now: Alert timestamp (defaults to current UTC time).
    """
    now = now or datetime.now(timezone.utc)
    metrics = compute_metrics(current)
    previous_metrics = compute_metrics(previous) if previous else None
    trend = compute_trend(
        metrics.averageResponseScore,
        previous_metrics.averageResponseScore if previous_metrics else None,
    )

    alerts: List[QualityAlert] = []
    change = trend.performanceChange

    if previous_metrics is not None and metrics.sampleSize and -change >= decline_threshold:
        alerts.append(QualityAlert(
            alertId=str(uuid4()),
            type=QualityAlertType.QUALITY_DECLINE,
            severity=decline_severity(-change, decline_threshold),
            message=(
                f"Average response score fell {-change:.1f} points to "
                f"{metrics.averageResponseScore:.1f}"
            ),
            metric='averageResponseScore',
            value=metrics.averageResponseScore,
            detectedAt=now,
        ))
    elif previous_metrics is not None and metrics.sampleSize and change >= 2 * decline_threshold:
        alerts.append(QualityAlert(
            alertId=str(uuid4()),
            type=QualityAlertType.PERFORMANCE_SPIKE,
            severity=AlertSeverity.LOW,
            message=(
                f"Average response score rose {change:.1f} points to "
                f"{metrics.averageResponseScore:.1f}"
            ),
            metric='averageResponseScore',
            value=metrics.averageResponseScore,
            detectedAt=now,
        ))

    current_values = [s.overallScore for s in current]
    baseline_values = [s.overallScore for s in previous] if len(previous) >= MIN_BASELINE else current_values
    anomalies = detect_anomalies(current_values, baseline_values, z_threshold)
    if anomalies:
        share = len(anomalies) / max(1, len(current_values))
        alerts.append(QualityAlert(
            alertId=str(uuid4()),
            type=QualityAlertType.ANOMALY_DETECTED,
            severity=AlertSeverity.HIGH if share > 0.1 else AlertSeverity.MEDIUM,
            message=f"{len(anomalies)} response score(s) deviate beyond {z_threshold:g} standard deviations",
            metric='overallScore',
            value=min(anomalies),
            detectedAt=now,
        ))

    if alerts:
        logger.warning(f"Quality monitoring raised {len(alerts)} alert(s); trend={trend.direction.value}")
    return QualityMonitoringReport(metrics=metrics, trend=trend, alerts=alerts)


__all__ = [
    'compute_metrics',
    'compute_trend',
    'decline_severity',
    'detect_anomalies',
    'monitor_quality',
]
