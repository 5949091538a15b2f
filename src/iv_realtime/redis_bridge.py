"""Forward every published event to Redis Pub/Sub for out-of-process fan-out.

Channel name: "iv:<topic name>", payload: the event's JSON dict.
Installed as an EventBus sink when REALTIME_REDIS_ENABLED is set.
"""

import json
import logging

from src.iv_common.redis_client import get_redis
from src.iv_realtime.events import Event, Topic

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "iv:"


def channel_for(topic: Topic) -> str:
    return f"{CHANNEL_PREFIX}{topic.name}"


async def redis_sink(topic: Topic, event: Event) -> None:
    redis = await get_redis()
    receivers = await redis.publish(channel_for(topic), json.dumps(event.to_payload()))
    logger.debug("Published %s to redis (%d receivers)", topic.name, receivers)
