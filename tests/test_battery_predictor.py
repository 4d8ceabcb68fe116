"""
Unit tests for the Battery Life Predictor
"""

from datetime import timedelta

import pytest

from tankwatch.models.prediction_models import BatteryAlertLevel, BatteryTrend
from tankwatch.services.battery_predictor import (
    battery_alert_level,
    battery_health_score,
    battery_trend,
    predict_battery_life,
)
from tankwatch.settings import BatteryThresholds
from tests.fixtures.reading_fixtures import NOON, make_reading


def voltage_series(voltages, spacing=timedelta(days=1)):
    return [
        make_reading(NOON + i * spacing, 80.0, voltage=v)
        for i, v in enumerate(voltages)
    ]


class TestBatteryBands:
    """Test the voltage band helpers"""

    @pytest.mark.parametrize(
        "voltage,expected",
        [(4.2, 100), (4.5, 100), (3.0, 0), (2.5, 0), (3.6, 50)],
    )
    def test_health_score(self, voltage, expected):
        """Test the linear 3.0V-4.2V scale"""
        assert battery_health_score(voltage) == expected

    @pytest.mark.parametrize(
        "voltage,expected",
        [
            (3.3, BatteryAlertLevel.CRITICAL),
            (3.1, BatteryAlertLevel.CRITICAL),
            (3.6, BatteryAlertLevel.WARNING),
            (3.5, BatteryAlertLevel.WARNING),
            (3.7, BatteryAlertLevel.GOOD),
        ],
    )
    def test_alert_level(self, voltage, expected):
        """Test critical <= 3.3V, warning <= 3.6V"""
        assert battery_alert_level(voltage) == expected

    @pytest.mark.parametrize(
        "rate,expected",
        [
            (-0.02, BatteryTrend.STABLE),
            (0.01, BatteryTrend.STABLE),
            (0.03, BatteryTrend.DECLINING),
            (0.05, BatteryTrend.DECLINING),
            (0.06, BatteryTrend.RAPID_DECLINE),
        ],
    )
    def test_trend(self, rate, expected):
        """Test decline-rate bands"""
        assert battery_trend(rate) == expected


class TestPredictBatteryLife:
    """Test predict_battery_life"""

    def test_declining_battery(self, declining_battery_readings):
        """Test 0.1V/day decline from 4.0V"""
        prediction = predict_battery_life(declining_battery_readings)

        assert prediction.current_voltage == 3.7
        assert prediction.decline_rate == pytest.approx(0.1)
        assert prediction.days_remaining == 7
        assert prediction.health_score == 58
        assert prediction.alert_level == BatteryAlertLevel.GOOD
        assert prediction.trend == BatteryTrend.RAPID_DECLINE
        assert prediction.r_squared == pytest.approx(1.0)
        assert prediction.last_reading == declining_battery_readings[-1].timestamp

    def test_stable_battery(self):
        """Test a flat voltage never predicts a depletion date"""
        prediction = predict_battery_life(voltage_series([4.1, 4.1, 4.1]))

        assert prediction.decline_rate == 0.0
        assert prediction.days_remaining is None
        assert prediction.trend == BatteryTrend.STABLE
        assert prediction.health_score == 92
        assert prediction.alert_level == BatteryAlertLevel.GOOD

    @pytest.mark.parametrize(
        "rate,expected",
        [
            (0.00996, BatteryTrend.STABLE),
            (0.01004, BatteryTrend.DECLINING),
            (0.04996, BatteryTrend.DECLINING),
            (0.05004, BatteryTrend.RAPID_DECLINE),
        ],
    )
    def test_trend_at_band_edges(self, rate, expected):
        """Test the bands apply to the fitted rate, not the reported one"""
        prediction = predict_battery_life(voltage_series([4.0 - rate * i for i in range(11)]))

        assert prediction.trend == expected
        assert prediction.decline_rate == round(rate, 4)

    def test_slow_decline_has_days_remaining(self):
        """Test a decline too small to report still predicts depletion"""
        prediction = predict_battery_life(voltage_series([4.0 - 0.00004 * i for i in range(11)]))

        assert prediction.decline_rate == 0.0
        # (3.9996 - 3.0) / 0.00004
        assert prediction.days_remaining == pytest.approx(24990, abs=1)
        assert prediction.trend == BatteryTrend.STABLE

    def test_charging_battery(self):
        """Test a rising voltage is stable"""
        prediction = predict_battery_life(voltage_series([3.8, 3.9, 4.0]))

        assert prediction.decline_rate < 0
        assert prediction.days_remaining is None
        assert prediction.trend == BatteryTrend.STABLE

    def test_critical_battery(self):
        """Test the alert level follows the latest voltage"""
        prediction = predict_battery_life(voltage_series([3.5, 3.4, 3.25]))

        assert prediction.alert_level == BatteryAlertLevel.CRITICAL
        assert prediction.days_remaining is not None

    def test_unsorted_input(self, declining_battery_readings):
        """Test the fit does not depend on caller order"""
        reversed_readings = list(reversed(declining_battery_readings))
        assert predict_battery_life(reversed_readings) == predict_battery_life(
            declining_battery_readings
        )

    def test_single_voltage_reading(self):
        """Test fewer than 2 voltage readings cannot fit a trend"""
        prediction = predict_battery_life(voltage_series([3.6]))

        assert prediction.current_voltage == 3.6
        assert prediction.days_remaining is None
        assert prediction.trend == BatteryTrend.STABLE
        assert prediction.alert_level == BatteryAlertLevel.UNKNOWN
        assert prediction.health_score == 50

    def test_no_voltage_data(self):
        """Test readings without voltage"""
        readings = [make_reading(NOON + timedelta(hours=i), 50.0) for i in range(5)]
        prediction = predict_battery_life(readings)

        assert prediction.current_voltage is None
        assert prediction.days_remaining is None
        assert prediction.trend == BatteryTrend.STABLE
        assert prediction.alert_level == BatteryAlertLevel.UNKNOWN
        assert prediction.health_score == 50
        assert prediction.last_reading is None

    def test_zero_voltage_ignored(self):
        """Test non-positive voltages are not battery data"""
        readings = voltage_series([0.0, 0.0, 4.0])
        prediction = predict_battery_life(readings)

        assert prediction.current_voltage == 4.0
        assert prediction.alert_level == BatteryAlertLevel.UNKNOWN

    def test_custom_thresholds(self, declining_battery_readings):
        """Test bands come from the thresholds object"""
        thresholds = BatteryThresholds(dead=3.2, critical=3.5, warning=3.8, good=4.2)
        prediction = predict_battery_life(declining_battery_readings, thresholds)

        assert prediction.alert_level == BatteryAlertLevel.WARNING
        assert prediction.days_remaining == 5

    def test_to_dict(self, declining_battery_readings):
        """Test JSON-ready serialization"""
        data = predict_battery_life(declining_battery_readings).to_dict()

        assert data["alert_level"] == "good"
        assert data["trend"] == "rapid_decline"
        assert data["last_reading"] == declining_battery_readings[-1].timestamp.isoformat()
