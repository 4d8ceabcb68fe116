"""
Integration tests for the Fleet Orchestrator
"""

from datetime import timedelta

import pytest

from tankwatch.models.prediction_models import HealthStatus
from tankwatch.orchestrators import AssetReadings, FleetOrchestrator
from tankwatch.settings import EngineSettings
from tests.fixtures.reading_fixtures import BASE_TIME, hourly_history


@pytest.fixture
def orchestrator():
    return FleetOrchestrator(EngineSettings(max_workers=4))


@pytest.fixture
def fleet():
    return {
        "tank-001": ("North Depot", hourly_history(30, start_pct=90.0, rate_per_hour=0.6, voltage=4.1)),
        "tank-002": ("South Yard", hourly_history(30, start_pct=70.0, rate_per_hour=0.6, voltage=3.2)),
        "tank-003": ("East Farm", hourly_history(3, start_pct=50.0)),
        "tank-004": ("West Field", hourly_history(12, start_pct=40.0, rate_per_hour=0.6)),
    }


class TestFleetOrchestrator:
    """Test run_fleet_predictions"""

    def test_predictions_in_input_order(self, orchestrator, fleet):
        """Test results follow input order and short histories are skipped"""
        result = orchestrator.run_fleet_predictions(fleet)

        assert [p.asset_id for p in result.predictions] == ["tank-001", "tank-002", "tank-004"]
        assert result.skipped_assets == ["tank-003"]
        assert result.failed_assets == {}

    def test_fleet_health_aggregated(self, orchestrator, fleet):
        """Test fan-in to the fleet health score"""
        result = orchestrator.run_fleet_predictions(fleet)

        assert result.fleet_health.total_devices == 3
        assert result.fleet_health.devices_critical == 1
        critical = [
            p.asset_id for p in result.predictions
            if p.device_health.overall_health == HealthStatus.CRITICAL
        ]
        assert critical == ["tank-002"]

    def test_per_asset_results(self, orchestrator, fleet):
        """Test each asset gets health, forecast and anomaly results"""
        result = orchestrator.run_fleet_predictions(fleet)
        first = result.predictions[0]

        assert first.location_name == "North Depot"
        assert first.device_health.asset_id == "tank-001"
        assert first.forecast.asset_id == "tank-001"
        assert first.anomalies.asset_id == "tank-001"
        assert len(result.device_predictions) == 3
        assert len(result.forecasts) == 3
        assert len(result.anomaly_reports) == 3

    def test_failed_asset_isolated(self, orchestrator, fleet):
        """Test an invalid history fails only its own asset"""
        bad = [
            {"timestamp": BASE_TIME + timedelta(hours=i), "calibrated_fill_pct": 150.0}
            for i in range(6)
        ]
        fleet["tank-bad"] = ("Broken Sensor", bad)

        result = orchestrator.run_fleet_predictions(fleet)

        assert "tank-bad" in result.failed_assets
        assert "tank-bad" not in [p.asset_id for p in result.predictions]
        assert result.fleet_health.total_devices == 3

    def test_asset_readings_input(self, orchestrator):
        """Test AssetReadings items are accepted"""
        assets = [
            AssetReadings("tank-010", "Depot A", hourly_history(10, rate_per_hour=0.6)),
            AssetReadings("tank-011", "Depot B", hourly_history(10, rate_per_hour=0.6)),
        ]
        result = orchestrator.run_fleet_predictions(assets)

        assert [p.asset_id for p in result.predictions] == ["tank-010", "tank-011"]

    def test_explicit_now(self, orchestrator, fleet):
        """Test forecast dates use the given reference time"""
        now = BASE_TIME + timedelta(days=3)
        result = orchestrator.run_fleet_predictions(fleet, now=now)

        for prediction in result.predictions:
            if prediction.forecast.optimal_refill_date is not None:
                assert prediction.forecast.optimal_refill_date >= now

    def test_empty_fleet(self, orchestrator):
        """Test an empty fleet"""
        result = orchestrator.run_fleet_predictions({})

        assert result.predictions == []
        assert result.fleet_health.overall_score == 100

    def test_single_worker(self, fleet):
        """Test a single worker gives the same results"""
        parallel = FleetOrchestrator(EngineSettings(max_workers=4)).run_fleet_predictions(fleet)
        serial = FleetOrchestrator(EngineSettings(max_workers=1)).run_fleet_predictions(fleet)

        assert parallel.to_dict() == serial.to_dict()

    def test_to_dict(self, orchestrator, fleet):
        """Test JSON-ready serialization"""
        data = orchestrator.run_fleet_predictions(fleet).to_dict()

        assert set(data) == {"predictions", "fleet_health", "skipped_assets", "failed_assets"}
        assert data["predictions"][0]["asset_id"] == "tank-001"
        assert data["fleet_health"]["total_devices"] == 3
