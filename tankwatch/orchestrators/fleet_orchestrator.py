"""
Fleet Orchestrator

Runs the per-asset predictors across a whole fleet and aggregates the
results into one fleet health score.

Each asset is independent, so the orchestrator fans out one task per asset
on a thread pool and fans in at ``calculate_fleet_health``. A failing asset
is logged and reported in ``failed_assets``; the rest of the fleet is still
aggregated. Results are returned in input order regardless of completion
order.

Example Usage:
    orchestrator = FleetOrchestrator()
    result = orchestrator.run_fleet_predictions({
        "tank-001": ("North Depot", readings_001),
        "tank-002": ("South Yard", readings_002),
    })
    print(result.fleet_health.overall_score)
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import structlog
from structlog.contextvars import bound_contextvars

from tankwatch.models.prediction_models import (
    AnomalyReport,
    ConsumptionForecast,
    DeviceHealthPrediction,
    FleetHealthScore,
)
from tankwatch.models.readings import ReadingInput, prepare_readings
from tankwatch.services.anomaly_detector import detect_anomalies
from tankwatch.services.consumption_forecaster import forecast_consumption
from tankwatch.services.device_health import predict_device_health
from tankwatch.services.fleet_health import calculate_fleet_health
from tankwatch.settings import EngineSettings

logger = structlog.get_logger(__name__)


@dataclass
class AssetReadings:
    """Reading history handed over by the repository layer for one asset"""
    asset_id: str
    location_name: str
    readings: Sequence[ReadingInput]


@dataclass
class AssetPrediction:
    asset_id: str
    location_name: str
    device_health: DeviceHealthPrediction
    forecast: ConsumptionForecast
    anomalies: AnomalyReport

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "location_name": self.location_name,
            "device_health": self.device_health.to_dict(),
            "forecast": self.forecast.to_dict(),
            "anomalies": self.anomalies.to_dict(),
        }


@dataclass
class FleetPredictionResult:
    predictions: List[AssetPrediction]
    fleet_health: FleetHealthScore
    skipped_assets: List[str] = field(default_factory=list)
    failed_assets: Dict[str, str] = field(default_factory=dict)

    @property
    def device_predictions(self) -> List[DeviceHealthPrediction]:
        return [p.device_health for p in self.predictions]

    @property
    def forecasts(self) -> List[ConsumptionForecast]:
        return [p.forecast for p in self.predictions]

    @property
    def anomaly_reports(self) -> List[AnomalyReport]:
        return [p.anomalies for p in self.predictions]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "predictions": [p.to_dict() for p in self.predictions],
            "fleet_health": self.fleet_health.to_dict(),
            "skipped_assets": list(self.skipped_assets),
            "failed_assets": dict(self.failed_assets),
        }


FleetInput = Union[
    Mapping[str, Tuple[str, Sequence[ReadingInput]]],
    Iterable[AssetReadings],
]


def _normalize_assets(assets: FleetInput) -> List[AssetReadings]:
    if isinstance(assets, Mapping):
        return [
            AssetReadings(asset_id=asset_id, location_name=location, readings=readings)
            for asset_id, (location, readings) in assets.items()
        ]
    return list(assets)


class FleetOrchestrator:
    """
    Fleet-wide prediction run.

    Per asset: device health, consumption forecast and anomaly report.
    Fleet-wide: FleetHealthScore over all assets that produced predictions.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        logger.info("FleetOrchestrator initialized", **self.settings.to_dict())

    def predict_asset(
        self,
        asset: AssetReadings,
        now: Optional[datetime] = None,
    ) -> AssetPrediction:
        """Run every per-asset predictor over one validated, sorted history."""
        with bound_contextvars(asset_id=asset.asset_id):
            ordered = prepare_readings(asset.readings)
            prediction = AssetPrediction(
                asset_id=asset.asset_id,
                location_name=asset.location_name,
                device_health=predict_device_health(
                    ordered, asset.asset_id, asset.location_name, self.settings
                ),
                forecast=forecast_consumption(
                    ordered, asset.asset_id, asset.location_name, self.settings, now=now
                ),
                anomalies=detect_anomalies(
                    ordered, asset.asset_id, asset.location_name, self.settings
                ),
            )
            logger.debug(
                "Asset predictions computed",
                overall_health=prediction.device_health.overall_health.value,
                urgency=prediction.forecast.urgency.value,
                anomalies=prediction.anomalies.anomaly_count,
            )
            return prediction

    def run_fleet_predictions(
        self,
        assets: FleetInput,
        now: Optional[datetime] = None,
    ) -> FleetPredictionResult:
        """
        Predict every asset in parallel and aggregate the fleet score.

        Args:
            assets: {asset_id: (location_name, readings)} or AssetReadings items
            now: Reference time for forecast dates (per-asset latest reading if None)

        Returns:
            FleetPredictionResult
        """
        fleet = _normalize_assets(assets)

        eligible: List[AssetReadings] = []
        skipped: List[str] = []
        for asset in fleet:
            readings = list(asset.readings)
            if len(readings) < self.settings.min_readings_per_asset:
                skipped.append(asset.asset_id)
                continue
            eligible.append(
                AssetReadings(asset.asset_id, asset.location_name, readings)
            )

        if skipped:
            logger.info(
                "Skipping assets with too few readings",
                skipped=len(skipped),
                min_readings=self.settings.min_readings_per_asset,
            )

        results: Dict[int, AssetPrediction] = {}
        failed: Dict[str, str] = {}

        if eligible:
            workers = max(1, min(self.settings.max_workers, len(eligible)))
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="AssetWorker"
            ) as executor:
                futures = {
                    executor.submit(self.predict_asset, asset, now): index
                    for index, asset in enumerate(eligible)
                }

                for future in as_completed(futures):
                    index = futures[future]
                    asset_id = eligible[index].asset_id
                    try:
                        results[index] = future.result()
                    except Exception as e:
                        logger.error(
                            "Asset prediction failed",
                            asset_id=asset_id,
                            error=str(e),
                            exc_info=True,
                        )
                        failed[asset_id] = str(e)

        predictions = [results[i] for i in sorted(results)]
        fleet_health = calculate_fleet_health(
            [p.device_health for p in predictions],
            [p.forecast for p in predictions],
            [p.anomalies for p in predictions],
        )

        logger.info(
            "Fleet predictions complete",
            assets=len(fleet),
            predicted=len(predictions),
            skipped=len(skipped),
            failed=len(failed),
            overall_score=fleet_health.overall_score,
        )
        return FleetPredictionResult(
            predictions=predictions,
            fleet_health=fleet_health,
            skipped_assets=skipped,
            failed_assets=failed,
        )
