"""
Configuration classes for the smart-grid producer
"""
import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional, Union, get_args, get_origin

from .errors import ConfigError

_CONFIG_PATH_ENV = "CONFIG_PATH"
_DEFAULT_CONFIG_PATH = "config.json"
_BROKERS_ENV = "KAFKA_BROKERS"
_TOPIC_ENV = "KAFKA_TOPIC"
_TOTAL_RECORDS_ENV = "TOTAL_RECORDS"
_BATCH_SIZE_ENV = "BATCH_SIZE"
_NUM_WORKERS_ENV = "NUM_WORKERS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass
class ProducerConfig:
    """Kafka client configuration with throughput-oriented defaults"""

    # Connection
    bootstrap_servers: str = "localhost:9092"
    connect_timeout: float = 10.0

    # Batching on the client side
    linger_ms: int = 20
    batch_num_messages: int = 10000

    # Compression
    compression_type: str = 'lz4'

    # Buffer Management
    queue_buffering_max_messages: int = 1000000
    message_max_bytes: int = 2000000

    # Reliability vs Speed
    acks: str = '1'

    # Retries
    retries: int = 3
    retry_backoff_ms: int = 100

    # Timeouts
    request_timeout_ms: int = 30000
    delivery_timeout_ms: int = 120000
    flush_timeout: float = 30.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to Kafka producer config dict"""
        return {
            'bootstrap.servers': self.bootstrap_servers,
            'linger.ms': self.linger_ms,
            'batch.num.messages': self.batch_num_messages,
            'compression.type': self.compression_type,
            'queue.buffering.max.messages': self.queue_buffering_max_messages,
            'message.max.bytes': self.message_max_bytes,
            'acks': self.acks,
            'retries': self.retries,
            'retry.backoff.ms': self.retry_backoff_ms,
            'request.timeout.ms': self.request_timeout_ms,
            'delivery.timeout.ms': self.delivery_timeout_ms,
        }


@dataclass
class TopicConfig:
    """Topic configuration"""
    name: str = "smart-grid-readings"
    create_if_missing: bool = False
    num_partitions: int = 12
    replication_factor: int = 1
    compression_type: str = 'lz4'
    min_insync_replicas: str = '1'

    def get_topic_config(self) -> Dict[str, str]:
        """Get topic-level config"""
        return {
            'compression.type': self.compression_type,
            'min.insync.replicas': self.min_insync_replicas
        }


@dataclass
class PipelineConfig:
    """Batching pipeline configuration"""
    batch_size: int = 5000  # Readings per broker batch
    num_workers: Optional[int] = None  # None = use cpu_count()
    num_generators: int = 1
    queue_capacity: int = 50000
    total_records: int = 0  # 0 or negative = continuous mode
    report_every: int = 100000
    report_interval_seconds: float = 5.0
    shutdown_grace_seconds: float = 10.0
    target_throughput: Optional[int] = None

    def __post_init__(self):
        if self.num_workers is None:
            from multiprocessing import cpu_count
            self.num_workers = cpu_count()

    @property
    def continuous(self) -> bool:
        return self.total_records <= 0


@dataclass
class Region:
    """Geographic box meters are placed in"""
    name: str
    min_lat: float
    max_lat: float
    min_long: float
    max_long: float
    meter_percentage: float


def default_regions() -> List[Region]:
    return [
        Region("Urban", 40.7128, 40.8128, -74.0060, -73.9060, 0.6),
        Region("Suburban", 40.6128, 40.7128, -74.1060, -74.0060, 0.3),
        Region("Rural", 40.5128, 40.6128, -74.2060, -74.1060, 0.1),
    ]


@dataclass
class GeneratorConfig:
    """Reading generator configuration"""
    meter_count: int = 100
    fault_probability: float = 0.01
    offline_probability: float = 0.005
    peak_load_modeling: bool = True
    seed: Optional[int] = None
    regions: List[Region] = field(default_factory=default_regions)


@dataclass
class AppConfig:
    """Everything the producer needs to run"""
    producer: ProducerConfig = field(default_factory=ProducerConfig)
    topic: TopicConfig = field(default_factory=TopicConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    generator: GeneratorConfig = field(default_factory=GeneratorConfig)
    log_level: str = "INFO"

    def validate(self) -> "AppConfig":
        """Raise ConfigError if any value is out of range"""
        if not self.producer.bootstrap_servers.strip():
            raise ConfigError("producer.bootstrap_servers must not be empty")
        if not self.topic.name.strip():
            raise ConfigError("topic.name must not be empty")

        self.log_level = self.log_level.strip().upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"log_level must be a logging level name, got {self.log_level!r}")

        pipeline = self.pipeline
        for name in ('batch_size', 'num_workers', 'num_generators', 'queue_capacity', 'report_every'):
            if getattr(pipeline, name) < 1:
                raise ConfigError(f"pipeline.{name} must be >= 1, got {getattr(pipeline, name)}")
        if pipeline.report_interval_seconds <= 0:
            raise ConfigError("pipeline.report_interval_seconds must be > 0")
        if pipeline.shutdown_grace_seconds < 0:
            raise ConfigError("pipeline.shutdown_grace_seconds must be >= 0")

        generator = self.generator
        if generator.meter_count < 1:
            raise ConfigError("generator.meter_count must be >= 1")
        for name in ('fault_probability', 'offline_probability'):
            value = getattr(generator, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"generator.{name} must be within [0, 1], got {value}")
        if not generator.regions:
            raise ConfigError("generator.regions must not be empty")
        total = sum(region.meter_percentage for region in generator.regions)
        if abs(total - 1.0) > 0.01:
            raise ConfigError(f"generator region percentages must sum to 1, got {total:.3f}")
        for region in generator.regions:
            if region.min_lat > region.max_lat or region.min_long > region.max_long:
                raise ConfigError(f"region '{region.name}' has inverted bounds")
        return self


def _check_type(path: str, value: Any, expected: Any) -> Any:
    """Validate a JSON value against a dataclass field annotation"""
    if get_origin(expected) is Union:
        options = [arg for arg in get_args(expected) if arg is not type(None)]
        if value is None:
            return None
        return _check_type(path, value, options[0])
    if expected is float and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if expected is int and isinstance(value, bool):
        raise ConfigError(f"{path} must be an integer, got {value!r}")
    if expected is str and isinstance(value, (int, float)) and not isinstance(value, bool):
        # acks and min.insync.replicas are commonly written as numbers
        return str(value)
    if isinstance(expected, type) and not isinstance(value, expected):
        raise ConfigError(f"{path} must be of type {expected.__name__}, got {value!r}")
    return value


def _build_section(cls, data: Any, section: str):
    if not isinstance(data, dict):
        raise ConfigError(f"'{section}' must be an object")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{section}': {', '.join(unknown)}")

    kwargs = {}
    for key, value in data.items():
        path = f"{section}.{key}"
        if cls is GeneratorConfig and key == 'regions':
            if not isinstance(value, list):
                raise ConfigError(f"{path} must be a list")
            kwargs[key] = [_build_section(Region, item, f"{path}[{i}]") for i, item in enumerate(value)]
        else:
            kwargs[key] = _check_type(path, value, known[key].type)
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ConfigError(f"Invalid '{section}' section: {e}") from e


def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    """Build an AppConfig from a parsed JSON document"""
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be an object")

    sections = {
        'producer': ProducerConfig,
        'topic': TopicConfig,
        'pipeline': PipelineConfig,
        'generator': GeneratorConfig,
    }
    unknown = sorted(set(data) - set(sections) - {'log_level'})
    if unknown:
        raise ConfigError(f"Unknown configuration section(s): {', '.join(unknown)}")

    kwargs = {name: _build_section(cls, data[name], name) for name, cls in sections.items() if name in data}
    if 'log_level' in data:
        kwargs['log_level'] = _check_type('log_level', data['log_level'], str)
    return AppConfig(**kwargs)


def _parse_brokers(value: str) -> str:
    """KAFKA_BROKERS accepts a JSON list or a comma-separated string"""
    candidate = value.strip()
    if candidate.startswith('['):
        try:
            brokers = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise ConfigError(f"{_BROKERS_ENV} is not valid JSON: {e}") from e
        if not isinstance(brokers, list) or not all(isinstance(b, str) for b in brokers):
            raise ConfigError(f"{_BROKERS_ENV} must be a list of strings")
        return ','.join(b.strip() for b in brokers if b.strip())
    return ','.join(b.strip() for b in candidate.split(',') if b.strip())


def _read_int_env(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Override file values with environment variables where set"""
    brokers = os.getenv(_BROKERS_ENV)
    if brokers is not None and brokers.strip():
        config.producer = replace(config.producer, bootstrap_servers=_parse_brokers(brokers))

    topic = os.getenv(_TOPIC_ENV)
    if topic is not None and topic.strip():
        config.topic = replace(config.topic, name=topic.strip())

    overrides = {}
    for env_name, attr in (
            (_TOTAL_RECORDS_ENV, 'total_records'),
            (_BATCH_SIZE_ENV, 'batch_size'),
            (_NUM_WORKERS_ENV, 'num_workers'),
    ):
        value = _read_int_env(env_name)
        if value is not None:
            overrides[attr] = value
    if overrides:
        config.pipeline = replace(config.pipeline, **overrides)

    log_level = os.getenv(_LOG_LEVEL_ENV)
    if log_level is not None and log_level.strip():
        config.log_level = log_level.strip().upper()
    return config


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load configuration: defaults, then the JSON file, then environment.

    The file is optional only when neither the argument nor CONFIG_PATH
    names one explicitly.
    """
    explicit = path or os.getenv(_CONFIG_PATH_ENV)
    config_path = explicit or _DEFAULT_CONFIG_PATH

    if os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read config file '{config_path}': {e}") from e
        config = config_from_dict(data)
    elif explicit:
        raise ConfigError(f"Config file '{config_path}' does not exist")
    else:
        config = AppConfig()

    return apply_env_overrides(config).validate()


class LogConfig:
    """Logging configuration"""

    @staticmethod
    def setup_logging(level=logging.INFO):
        """Setup logging configuration"""
        logging.basicConfig(
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            level=level,
            datefmt='%Y-%m-%d %H:%M:%S'
        )
