import json
import threading
from datetime import datetime, timezone

from conftest import fixed_clock

from smart_grid_producer.config import GeneratorConfig, Region
from smart_grid_producer.generator import ReadingGenerator
from smart_grid_producer.models import BuildingType, MeterStatus


def test_builds_fixed_meter_table(generator) -> None:
    assert len(generator.meters) == 50
    assert generator.meters[0].meter_id == "meter-000001"
    assert generator.meters[-1].meter_id == "meter-000050"


def test_meters_fall_inside_their_region(generator, generator_config) -> None:
    regions = {region.name: region for region in generator_config.regions}
    for meter in generator.meters:
        region = regions[meter.region]
        assert region.min_lat <= meter.latitude <= region.max_lat
        assert region.min_long <= meter.longitude <= region.max_long


def test_base_consumption_follows_building_type(generator) -> None:
    ranges = {
        BuildingType.RESIDENTIAL: (0.5, 2.0),
        BuildingType.COMMERCIAL: (3.0, 10.0),
        BuildingType.INDUSTRIAL: (15.0, 40.0),
    }
    for meter in generator.meters:
        low, high = ranges[meter.building_type]
        assert low <= meter.base_consumption <= high


def test_same_seed_same_sequence(generator_config) -> None:
    first = ReadingGenerator(generator_config, clock=fixed_clock).generate_batch(200)
    second = ReadingGenerator(generator_config, clock=fixed_clock).generate_batch(200)
    assert first == second


def test_reading_references_a_known_meter(generator) -> None:
    meters = {meter.meter_id: meter for meter in generator.meters}
    for reading in generator.generate_batch(100):
        meter = meters[reading.meter_id]
        assert reading.region == meter.region
        assert reading.building_type == meter.building_type
        assert reading.timestamp == fixed_clock()


def test_offline_readings_have_zero_consumption() -> None:
    config = GeneratorConfig(meter_count=10, seed=1, fault_probability=0.0, offline_probability=1.0)
    generator = ReadingGenerator(config, clock=fixed_clock)
    for reading in generator.generate_batch(50):
        assert reading.status is MeterStatus.OFFLINE
        assert reading.consumption_kwh == 0.0
        assert reading.peak_load is False


def test_no_fault_or_offline_when_probabilities_are_zero() -> None:
    config = GeneratorConfig(meter_count=10, seed=1, fault_probability=0.0, offline_probability=0.0)
    generator = ReadingGenerator(config, clock=fixed_clock)
    assert all(r.status is MeterStatus.OPERATIONAL for r in generator.generate_batch(200))


def test_night_consumption_is_reduced() -> None:
    night = lambda: datetime(2024, 6, 1, 2, 0, tzinfo=timezone.utc)
    config = GeneratorConfig(meter_count=20, seed=3, fault_probability=0.0, offline_probability=0.0)
    generator = ReadingGenerator(config, clock=night)
    meters = {meter.meter_id: meter for meter in generator.meters}
    for reading in generator.generate_batch(200):
        base = meters[reading.meter_id].base_consumption
        assert reading.consumption_kwh <= round(base * 0.7, 4) + 1e-9


def test_peak_load_modeling_can_be_disabled() -> None:
    config = GeneratorConfig(
        meter_count=20,
        seed=5,
        fault_probability=1.0,
        offline_probability=0.0,
        peak_load_modeling=False,
    )
    generator = ReadingGenerator(config, clock=fixed_clock)
    assert not any(r.peak_load for r in generator.generate_batch(500))


def test_region_selection_falls_back_to_last_region() -> None:
    regions = [
        Region("Only", 10.0, 11.0, 20.0, 21.0, 0.5),
        Region("Last", 30.0, 31.0, 40.0, 41.0, 0.0),
    ]
    config = GeneratorConfig(meter_count=200, seed=9, regions=regions)
    generator = ReadingGenerator(config, clock=fixed_clock)
    assert {meter.region for meter in generator.meters} == {"Only", "Last"}


def test_reading_serializes_with_wire_keys(generator) -> None:
    body = json.loads(json.dumps(generator.next_record().to_dict()))
    assert set(body) == {
        'id', 'meterId', 'timestamp', 'consumptionKWh', 'latitude', 'longitude',
        'region', 'status', 'buildingType', 'peakLoad',
    }
    assert body['timestamp'] == "2024-06-01T14:30:00+00:00"
    assert body['status'] in {'operational', 'fault', 'offline'}


def test_concurrent_calls_yield_unique_ids(generator) -> None:
    ids = []
    lock = threading.Lock()

    def produce():
        batch = generator.generate_batch(500)
        with lock:
            ids.extend(r.id for r in batch)

    threads = [threading.Thread(target=produce) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(ids) == len(set(ids)) == 2000
