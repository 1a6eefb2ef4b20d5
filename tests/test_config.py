import json

import pytest

from smart_grid_producer.config import (
    AppConfig,
    PipelineConfig,
    ProducerConfig,
    config_from_dict,
    load_config
)
from smart_grid_producer.errors import ConfigError

_ENV_VARS = ("CONFIG_PATH", "KAFKA_BROKERS", "KAFKA_TOPIC", "TOTAL_RECORDS", "BATCH_SIZE", "NUM_WORKERS", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _write(tmp_path, data) -> str:
    path = tmp_path / "producer.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_defaults_without_file() -> None:
    config = load_config()

    assert config.producer.bootstrap_servers == "localhost:9092"
    assert config.topic.name == "smart-grid-readings"
    assert config.pipeline.batch_size == 5000
    assert config.pipeline.queue_capacity == 50000
    assert config.pipeline.continuous
    assert config.pipeline.num_workers >= 1
    assert len(config.generator.regions) == 3


def test_file_values_are_applied(tmp_path) -> None:
    path = _write(tmp_path, {
        "producer": {"bootstrap_servers": "kafka:9092", "acks": 1},
        "pipeline": {"batch_size": 1000, "total_records": 2500, "num_workers": 2},
        "generator": {"meter_count": 10, "seed": 4},
        "log_level": "DEBUG",
    })

    config = load_config(path)

    assert config.producer.bootstrap_servers == "kafka:9092"
    assert config.producer.acks == "1"
    assert config.pipeline.batch_size == 1000
    assert not config.pipeline.continuous
    assert config.pipeline.num_workers == 2
    assert config.generator.seed == 4
    assert config.log_level == "DEBUG"


def test_config_path_env_is_used(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CONFIG_PATH", _write(tmp_path, {"topic": {"name": "from-file"}}))
    assert load_config().topic.name == "from-file"


def test_explicit_missing_file_is_an_error(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.json"))


def test_malformed_json_is_an_error(tmp_path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("KAFKA_BROKERS", '["b1:9092", "b2:9092"]')
    monkeypatch.setenv("KAFKA_TOPIC", "override")
    monkeypatch.setenv("TOTAL_RECORDS", "10000")
    monkeypatch.setenv("BATCH_SIZE", "250")
    monkeypatch.setenv("NUM_WORKERS", "3")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config()

    assert config.producer.bootstrap_servers == "b1:9092,b2:9092"
    assert config.topic.name == "override"
    assert config.pipeline.total_records == 10000
    assert config.pipeline.batch_size == 250
    assert config.pipeline.num_workers == 3
    assert config.log_level == "DEBUG"


def test_comma_separated_brokers(monkeypatch) -> None:
    monkeypatch.setenv("KAFKA_BROKERS", "a:1, b:2")
    assert load_config().producer.bootstrap_servers == "a:1,b:2"


def test_non_integer_env_is_an_error(monkeypatch) -> None:
    monkeypatch.setenv("BATCH_SIZE", "lots")
    with pytest.raises(ConfigError):
        load_config()


@pytest.mark.parametrize("data", [
    {"pipeline": {"batch_size": 0}},
    {"pipeline": {"num_workers": 0}},
    {"pipeline": {"queue_capacity": -5}},
    {"pipeline": {"batch_size": "big"}},
    {"pipeline": {"batch_size": True}},
    {"producer": {"bootstrap_servers": "  "}},
    {"topic": {"name": ""}},
    {"generator": {"fault_probability": 1.5}},
    {"generator": {"regions": []}},
    {"generator": {"regions": [{"name": "A", "min_lat": 0, "max_lat": 1,
                                "min_long": 0, "max_long": 1, "meter_percentage": 0.4}]}},
    {"generator": {"regions": [{"name": "A"}]}},
    {"pipeline": {"unknown_knob": 1}},
    {"metrics": {}},
    {"log_level": "verbose"},
])
def test_invalid_values_are_rejected(tmp_path, data) -> None:
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, data))


def test_root_must_be_an_object() -> None:
    with pytest.raises(ConfigError):
        config_from_dict([])


def test_num_workers_defaults_to_cpu_count() -> None:
    from multiprocessing import cpu_count
    assert PipelineConfig().num_workers == cpu_count()


def test_producer_dict_uses_kafka_keys() -> None:
    settings = ProducerConfig(bootstrap_servers="k:1", acks="all", retries=5).to_dict()
    assert settings['bootstrap.servers'] == "k:1"
    assert settings['acks'] == "all"
    assert settings['retries'] == 5
    assert settings['compression.type'] == "lz4"


def test_validate_returns_config() -> None:
    config = AppConfig()
    assert config.validate() is config


def test_log_level_is_normalized(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    assert load_config().log_level == "DEBUG"


def test_unknown_log_level_env_is_an_error(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(ConfigError, match="log_level"):
        load_config()
