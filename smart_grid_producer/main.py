"""
Main entry point for the smart-grid reading producer
"""
import logging
import signal
import sys
from typing import Optional

from .admin import KafkaTopicManager
from .config import AppConfig, LogConfig, load_config
from .errors import BrokerConnectionError, ConfigError
from .generator import ReadingGenerator
from .pipeline import PipelineCoordinator
from .producer import KafkaBroker
from .stats import PipelineSummary


class ProducerApplication:
    """Main application orchestrator"""

    def __init__(self, config: AppConfig):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = config
        self.coordinator = PipelineCoordinator(
            config.pipeline,
            config.topic.name,
            broker_factory=lambda: KafkaBroker(config.producer),
            generator_factory=lambda: ReadingGenerator(config.generator),
        )

    def setup_topic(self) -> None:
        """Create topic if configured and missing"""
        if not self.config.topic.create_if_missing:
            return
        topic_manager = KafkaTopicManager(
            self.config.producer.bootstrap_servers,
            timeout=self.config.producer.connect_timeout
        )
        topic_manager.create_topic(self.config.topic)

    def install_signal_handlers(self) -> None:
        """SIGINT and SIGTERM start a graceful drain"""
        def signal_handler(sig, frame):
            # No logging or locking here, the coordinator loop acts on the flag
            self.coordinator.request_cancel(f"signal {signal.Signals(sig).name}")

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def run(self) -> PipelineSummary:
        """Run the complete producer workflow"""
        self.setup_topic()
        return self.coordinator.run()


def main(config_path: Optional[str] = None) -> int:
    """Main entry point, returns the process exit status"""
    LogConfig.setup_logging()
    logger = logging.getLogger("smart_grid_producer")

    try:
        config = load_config(config_path)
    except ConfigError as e:
        logger.error(f"Failed to load configuration: {e}")
        return 1

    logging.getLogger().setLevel(config.log_level)

    app = ProducerApplication(config)
    app.install_signal_handlers()

    try:
        app.run()
    except BrokerConnectionError as e:
        logger.error(f"Failed to create Kafka producer: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
