"""
Unit tests for the Device Health Predictor
"""

from datetime import timedelta

import pytest

from tankwatch.models.prediction_models import (
    BatteryAlertLevel,
    BatteryPrediction,
    BatteryTrend,
    HealthStatus,
)
from tankwatch.services.device_health import (
    ISSUE_BATTERY_CRITICAL,
    ISSUE_BATTERY_WARNING,
    ISSUE_CONNECTIVITY,
    ISSUE_SENSOR_DRIFT,
    ISSUE_TEMPERATURE,
    drift_increase,
    failure_probability,
    offline_statistics,
    overall_health,
    predict_device_health,
)
from tests.fixtures.reading_fixtures import BASE_TIME, NOON, hourly_history, make_reading


def battery(alert=BatteryAlertLevel.GOOD, trend=BatteryTrend.STABLE):
    return BatteryPrediction(
        current_voltage=4.0,
        decline_rate=0.0,
        days_remaining=None,
        health_score=83,
        alert_level=alert,
        trend=trend,
    )


def online_pattern(states, spacing=timedelta(days=1)):
    return [
        make_reading(NOON + i * spacing, 50.0, online=state)
        for i, state in enumerate(states)
    ]


class TestOfflineStatistics:
    """Test offline event counting"""

    def test_two_events_over_two_weeks(self):
        """Test frequency per week and average duration"""
        states = [True] * 15
        states[3] = False  # 24h offline
        states[7] = states[8] = False  # 48h offline
        frequency, avg_duration = offline_statistics(online_pattern(states))

        assert frequency == pytest.approx(1.0)
        assert avg_duration == pytest.approx(36.0)

    def test_short_history_counts_as_one_week(self):
        """Test weeks spanned is at least 1"""
        readings = online_pattern(
            [False, True, False, True, False, True], spacing=timedelta(hours=1)
        )
        frequency, avg_duration = offline_statistics(readings)

        assert frequency == pytest.approx(3.0)
        assert avg_duration == pytest.approx(1.0)

    def test_open_event_adds_no_duration(self):
        """Test an event still open at the end counts without duration"""
        frequency, avg_duration = offline_statistics(
            online_pattern([True, False, False], spacing=timedelta(hours=6))
        )
        assert frequency == pytest.approx(1.0)
        assert avg_duration == 0.0

    def test_always_online(self):
        """Test no offline events"""
        assert offline_statistics(online_pattern([True] * 5)) == (0.0, 0.0)

    def test_empty(self):
        """Test empty history"""
        assert offline_statistics([]) == (0.0, 0.0)


class TestDriftIncrease:
    """Test sensor drift growth"""

    def test_growing_drift(self):
        """Test recent 10 vs earliest 10 drift-eligible readings"""
        readings = [
            make_reading(NOON + timedelta(days=i), 50.0, raw=51.0 if i < 10 else 63.0)
            for i in range(20)
        ]
        assert drift_increase(readings) == pytest.approx(12.0)

    def test_short_history(self):
        """Test the two windows overlap with fewer than 20 eligible readings"""
        readings = [
            make_reading(NOON + timedelta(hours=i), 50.0, raw=50.0 + i)
            for i in range(15)
        ]
        # mean(5..14) - mean(0..9)
        assert drift_increase(readings) == pytest.approx(5.0)

    def test_no_eligible_readings(self):
        """Test readings without a raw level give 0"""
        readings = [make_reading(NOON + timedelta(hours=i), 50.0) for i in range(15)]
        assert drift_increase(readings) == 0.0

    def test_minimum_readings(self):
        """Test an explicit minimum"""
        readings = [
            make_reading(NOON + timedelta(hours=i), 50.0, raw=50.0 + i)
            for i in range(15)
        ]
        assert drift_increase(readings, min_readings=20) == 0.0


class TestFailureProbability:
    """Test additive failure scoring"""

    def test_healthy(self):
        """Test nothing triggered"""
        probability, issues = failure_probability(battery(), 0.5, 1.0, 3.0)
        assert probability == 0
        assert issues == []

    def test_all_non_battery_factors(self):
        """Test connectivity, drift and temperature points and issue order"""
        probability, issues = failure_probability(battery(), 6.0, 11.0, 21.0)

        assert probability == 60
        assert issues == [ISSUE_CONNECTIVITY, ISSUE_TEMPERATURE, ISSUE_SENSOR_DRIFT]

    def test_battery_warning(self):
        """Test battery warning adds 20 and its issue comes first"""
        probability, issues = failure_probability(
            battery(BatteryAlertLevel.WARNING), 3.0, 6.0, 16.0
        )

        assert probability == 20 + 15 + 10 + 5
        assert issues[0] == ISSUE_BATTERY_WARNING

    def test_battery_critical(self):
        """Test battery critical adds 40"""
        probability, issues = failure_probability(battery(BatteryAlertLevel.CRITICAL), 0, 0, 0)
        assert probability == 40
        assert issues == [ISSUE_BATTERY_CRITICAL]

    def test_rapid_decline_has_no_issue(self):
        """Test a rapidly declining but healthy battery adds 15 silently"""
        probability, issues = failure_probability(
            battery(trend=BatteryTrend.RAPID_DECLINE), 0, 0, 0
        )
        assert probability == 15
        assert issues == []

    def test_low_offline_frequency(self):
        """Test just over 1 event per week adds 5 without an issue"""
        probability, issues = failure_probability(battery(), 1.5, 0, 0)
        assert probability == 5
        assert issues == []

    def test_capped_at_100(self):
        """Test every factor at its maximum"""
        probability, _ = failure_probability(
            battery(BatteryAlertLevel.CRITICAL), 10.0, 20.0, 30.0
        )
        assert probability == 100

    @pytest.mark.parametrize(
        "probability,alert,expected",
        [
            (0, BatteryAlertLevel.GOOD, HealthStatus.GOOD),
            (25, BatteryAlertLevel.GOOD, HealthStatus.GOOD),
            (30, BatteryAlertLevel.GOOD, HealthStatus.WARNING),
            (51, BatteryAlertLevel.GOOD, HealthStatus.CRITICAL),
            (0, BatteryAlertLevel.WARNING, HealthStatus.WARNING),
            (0, BatteryAlertLevel.CRITICAL, HealthStatus.CRITICAL),
            (0, BatteryAlertLevel.UNKNOWN, HealthStatus.GOOD),
        ],
    )
    def test_overall_health(self, probability, alert, expected):
        """Test health status thresholds"""
        assert overall_health(probability, alert) == expected


class TestPredictDeviceHealth:
    """Test predict_device_health"""

    def test_healthy_device(self):
        """Test a steady, always-online device"""
        readings = hourly_history(24, start_pct=80.0, voltage=4.1, temperature=20.0)
        prediction = predict_device_health(readings, "tank-001", "North Depot")

        assert prediction.asset_id == "tank-001"
        assert prediction.location_name == "North Depot"
        assert prediction.failure_probability == 0
        assert prediction.predicted_issues == []
        assert prediction.overall_health == HealthStatus.GOOD
        assert prediction.temperature_variance == 0.0
        assert prediction.temperature_avg == 20.0
        assert prediction.sensor_drift == 0.0
        assert prediction.last_online == readings[-1].timestamp

    def test_critical_battery(self):
        """Test a critical battery makes the device critical"""
        readings = hourly_history(24, start_pct=80.0, voltage=3.2)
        prediction = predict_device_health(readings, "tank-002", "South Yard")

        assert prediction.battery.alert_level == BatteryAlertLevel.CRITICAL
        assert prediction.failure_probability == 40
        assert prediction.predicted_issues == [ISSUE_BATTERY_CRITICAL]
        assert prediction.overall_health == HealthStatus.CRITICAL

    def test_temperature_fluctuation(self):
        """Test a population std deviation of 25"""
        readings = [
            make_reading(BASE_TIME + timedelta(hours=i), 80.0, temperature=0.0 if i % 2 else 50.0)
            for i in range(10)
        ]
        prediction = predict_device_health(readings, "tank-003", "East Farm")

        assert prediction.temperature_variance == 25.0
        assert prediction.temperature_avg == 25.0
        assert ISSUE_TEMPERATURE in prediction.predicted_issues
        assert prediction.failure_probability == 10

    def test_drift_on_short_history(self):
        """Test drift growth is scored with fewer than 20 eligible readings"""
        readings = [
            make_reading(BASE_TIME + timedelta(hours=i), 50.0, raw=50.0 + 3 * i)
            for i in range(15)
        ]
        prediction = predict_device_health(readings, "tank-007", "Depot")

        # mean(15..42) - mean(0..27)
        assert prediction.sensor_drift == 15.0
        assert prediction.predicted_issues == [ISSUE_SENSOR_DRIFT]
        assert prediction.failure_probability == 20

    def test_last_online(self):
        """Test last_online skips trailing offline readings"""
        readings = online_pattern([True, True, False, False], spacing=timedelta(hours=1))
        prediction = predict_device_health(readings, "tank-004", "West Field")

        assert prediction.last_online == readings[1].timestamp

    def test_no_telemetry(self):
        """Test missing voltage and temperature"""
        prediction = predict_device_health(hourly_history(5), "tank-005", "Depot")

        assert prediction.battery.alert_level == BatteryAlertLevel.UNKNOWN
        assert prediction.battery.health_score == 50
        assert prediction.temperature_avg is None
        assert prediction.temperature_variance == 0.0
        assert prediction.overall_health == HealthStatus.GOOD

    def test_to_dict(self):
        """Test JSON-ready serialization"""
        readings = hourly_history(5, voltage=4.0)
        data = predict_device_health(readings, "tank-006", "Depot").to_dict()

        assert data["asset_id"] == "tank-006"
        assert data["overall_health"] == "good"
        assert data["battery"]["alert_level"] == "good"
        assert data["last_online"] == readings[-1].timestamp.isoformat()
