"""
Domain records produced by the generator
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict


class MeterStatus(str, Enum):
    OPERATIONAL = "operational"
    FAULT = "fault"
    OFFLINE = "offline"


class BuildingType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"


@dataclass(frozen=True)
class MeterProfile:
    """Static attributes of one simulated meter"""
    meter_id: str
    region: str
    latitude: float
    longitude: float
    building_type: BuildingType
    base_consumption: float
    peak_load_probability: float
    fault_probability: float


@dataclass(frozen=True)
class Reading:
    """One energy consumption reading from a smart meter"""
    id: str
    meter_id: str
    timestamp: datetime
    consumption_kwh: float
    latitude: float
    longitude: float
    region: str
    status: MeterStatus
    building_type: BuildingType
    peak_load: bool

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready message body"""
        return {
            'id': self.id,
            'meterId': self.meter_id,
            'timestamp': self.timestamp.isoformat(),
            'consumptionKWh': self.consumption_kwh,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'region': self.region,
            'status': self.status.value,
            'buildingType': self.building_type.value,
            'peakLoad': self.peak_load,
        }
