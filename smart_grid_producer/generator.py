"""
Data generators for smart-meter readings
"""
import random
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .config import GeneratorConfig, Region
from .models import BuildingType, MeterProfile, MeterStatus, Reading


class DataGenerator(ABC):
    """Abstract base class for data generators"""

    @abstractmethod
    def generate_single(self) -> Reading:
        """Generate a single record"""
        pass

    def next_record(self) -> Reading:
        return self.generate_single()

    def generate_batch(self, batch_size: int) -> List[Reading]:
        """Generate a batch of records"""
        return [self.generate_single() for _ in range(batch_size)]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReadingGenerator(DataGenerator):
    """Generate energy consumption readings from a fixed set of meters"""

    # kWh above which a reading may count as peak load
    PEAK_LOAD_THRESHOLDS = {
        BuildingType.RESIDENTIAL: 5.0,
        BuildingType.COMMERCIAL: 15.0,
        BuildingType.INDUSTRIAL: 50.0,
    }

    # Daytime hours, inclusive
    DAY_START_HOUR = 8
    DAY_END_HOUR = 20

    def __init__(self, config: GeneratorConfig, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.clock = clock or _utc_now
        self.rnd = random.Random(config.seed)
        self._lock = threading.Lock()
        self.meters: List[MeterProfile] = self._initialize_meters()

    def _initialize_meters(self) -> List[MeterProfile]:
        meters = []
        for i in range(self.config.meter_count):
            region = self._select_region()

            lat = self.rnd.uniform(region.min_lat, region.max_lat)
            long = self.rnd.uniform(region.min_long, region.max_long)

            building_type = self._select_building_type()
            base_consumption = self._base_consumption(building_type)

            # 80% of meters never peak and never fault
            peak_load_probability = 0.0 if self.rnd.random() < 0.8 else 1.0
            fault_probability = 0.0 if self.rnd.random() < 0.8 else 1.0

            meters.append(MeterProfile(
                meter_id=f"meter-{i + 1:06d}",
                region=region.name,
                latitude=lat,
                longitude=long,
                building_type=building_type,
                base_consumption=base_consumption,
                peak_load_probability=peak_load_probability,
                fault_probability=fault_probability,
            ))
        return meters

    def _select_region(self) -> Region:
        """Choose a region following the configured meter distribution"""
        val = self.rnd.random()
        cumulative = 0.0
        for region in self.config.regions:
            cumulative += region.meter_percentage
            if val <= cumulative:
                return region
        return self.config.regions[-1]

    def _select_building_type(self) -> BuildingType:
        val = self.rnd.random()
        if val < 0.7:
            return BuildingType.RESIDENTIAL
        if val < 0.9:
            return BuildingType.COMMERCIAL
        return BuildingType.INDUSTRIAL

    def _base_consumption(self, building_type: BuildingType) -> float:
        if building_type is BuildingType.RESIDENTIAL:
            return 0.5 + self.rnd.random() * 1.5
        if building_type is BuildingType.COMMERCIAL:
            return 3 + self.rnd.random() * 7
        return 15 + self.rnd.random() * 25

    def _select_status(self, meter: MeterProfile) -> MeterStatus:
        if self.rnd.random() < self.config.fault_probability and meter.fault_probability > 0:
            return MeterStatus.FAULT
        if self.rnd.random() < self.config.offline_probability:
            return MeterStatus.OFFLINE
        return MeterStatus.OPERATIONAL

    def _consumption(self, meter: MeterProfile, status: MeterStatus, now: datetime) -> float:
        consumption = meter.base_consumption

        if self.DAY_START_HOUR <= now.hour <= self.DAY_END_HOUR:
            consumption *= 1.0 + 0.5 * self.rnd.random()
        else:
            consumption *= 0.4 + 0.3 * self.rnd.random()

        if status is MeterStatus.FAULT:
            # Faulty meters either spike or drop
            if self.rnd.random() < 0.5:
                consumption *= 2 + self.rnd.random()
            else:
                consumption *= 0.3
        elif status is MeterStatus.OFFLINE:
            consumption = 0.0
        return consumption

    def _is_peak_load(self, meter: MeterProfile, consumption: float) -> bool:
        if not self.config.peak_load_modeling:
            return False
        threshold = self.PEAK_LOAD_THRESHOLDS[meter.building_type]
        return consumption > threshold and self.rnd.random() < meter.peak_load_probability

    def generate_single(self) -> Reading:
        """Generate a single meter reading"""
        with self._lock:
            meter = self.meters[self.rnd.randrange(len(self.meters))]
            now = self.clock()
            status = self._select_status(meter)
            consumption = self._consumption(meter, status, now)

            return Reading(
                id=str(uuid.UUID(int=self.rnd.getrandbits(128), version=4)),
                meter_id=meter.meter_id,
                timestamp=now,
                consumption_kwh=round(consumption, 4),
                latitude=meter.latitude,
                longitude=meter.longitude,
                region=meter.region,
                status=status,
                building_type=meter.building_type,
                peak_load=self._is_peak_load(meter, consumption),
            )
