"""
Kafka topic administration
"""
import logging
import time
from typing import Any, Dict, List, Optional

from confluent_kafka import KafkaException
from confluent_kafka.admin import AdminClient, NewTopic

from .config import TopicConfig
from .errors import BrokerConnectionError


class KafkaTopicManager:
    """Provisions the readings topic before the pipeline starts"""

    def __init__(self, bootstrap_servers: str, timeout: float = 10.0, settle_seconds: float = 2.0):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.bootstrap_servers = bootstrap_servers
        self.timeout = timeout
        self.settle_seconds = settle_seconds
        self.admin_client = AdminClient({'bootstrap.servers': bootstrap_servers})

    def list_topics(self) -> List[str]:
        """List all topics"""
        try:
            metadata = self.admin_client.list_topics(timeout=self.timeout)
        except KafkaException as e:
            raise BrokerConnectionError(f"Cannot list topics on {self.bootstrap_servers}: {e}") from e
        return list(metadata.topics.keys())

    def topic_exists(self, topic_name: str) -> bool:
        return topic_name in self.list_topics()

    def create_topic(self, topic_config: TopicConfig) -> bool:
        """Create the topic unless it exists; True if it was created"""
        if self.topic_exists(topic_config.name):
            self.logger.info(f"Topic '{topic_config.name}' already exists")
            return False

        new_topic = NewTopic(
            topic_config.name,
            num_partitions=topic_config.num_partitions,
            replication_factor=topic_config.replication_factor,
            config=topic_config.get_topic_config()
        )
        fs = self.admin_client.create_topics([new_topic])

        try:
            fs[topic_config.name].result()
        except KafkaException as e:
            self.logger.error(f"Failed to create topic '{topic_config.name}': {e}")
            raise BrokerConnectionError(f"Failed to create topic '{topic_config.name}': {e}") from e

        time.sleep(self.settle_seconds)  # creation propagates asynchronously
        self.logger.info(
            f"Topic '{topic_config.name}' created "
            f"(partitions={topic_config.num_partitions}, "
            f"replication={topic_config.replication_factor})"
        )
        return True

    def delete_topic(self, topic_name: str) -> bool:
        """Delete the topic if present; True if it was deleted"""
        if not self.topic_exists(topic_name):
            self.logger.info(f"Topic '{topic_name}' does not exist")
            return False

        fs = self.admin_client.delete_topics([topic_name])
        try:
            fs[topic_name].result()
        except KafkaException as e:
            self.logger.error(f"Failed to delete topic '{topic_name}': {e}")
            raise BrokerConnectionError(f"Failed to delete topic '{topic_name}': {e}") from e

        time.sleep(self.settle_seconds)
        self.logger.info(f"Topic '{topic_name}' deleted")
        return True

    def get_topic_info(self, topic_name: str) -> Optional[Dict[str, Any]]:
        """Partition layout of a topic, None when it does not exist"""
        try:
            metadata = self.admin_client.list_topics(topic=topic_name, timeout=self.timeout)
        except KafkaException as e:
            raise BrokerConnectionError(f"Cannot describe topic '{topic_name}': {e}") from e

        topic = metadata.topics.get(topic_name)
        if topic is None or topic.error is not None:
            return None

        return {
            'name': topic_name,
            'partitions': len(topic.partitions),
            'partition_info': [
                {
                    'id': p.id,
                    'leader': p.leader,
                    'replicas': p.replicas,
                    'isrs': p.isrs
                }
                for p in topic.partitions.values()
            ]
        }
