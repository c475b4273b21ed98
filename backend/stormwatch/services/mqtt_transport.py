"""MQTT transport: receives samples and barograph requests, publishes results.

Subscribes to the pressure, temperature and barograph request topics.
Samples are fed to the ReadingBuffer; a request with ``{"fetch": true}``
publishes the current barograph. Alerts from the scheduler go out through
publish_alert(). paho runs its network loop in its own thread, so every
handler here is synchronous.
"""

import json
import logging
from typing import Any, Optional, Union

import paho.mqtt.client as mqtt
from pydantic import BaseModel, ValidationError

from ..config import Settings
from ..errors import MalformedInput, StoreUnavailable
from .barograph import BarographService
from .reading_buffer import ReadingBuffer, parse_sample

logger = logging.getLogger(__name__)


class BarographRequest(BaseModel):
    fetch: bool = False


def parse_barograph_request(payload: Union[bytes, str]) -> BarographRequest:
    try:
        return BarographRequest.model_validate_json(payload)
    except ValidationError as e:
        raise MalformedInput(f"invalid barograph request: {e.error_count()} error(s)") from e


class StormTransport:
    """Owns the MQTT client and routes messages by topic."""

    def __init__(
        self,
        settings: Settings,
        buffer: ReadingBuffer,
        barograph: BarographService,
        client: Optional[mqtt.Client] = None,
    ):
        self.settings = settings
        self.buffer = buffer
        self.barograph = barograph
        self.connected = False
        self._refusal_logged = False

        self.client = client or mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=settings.mqtt_client_id,
        )
        # Doubles from 1s up to the configured ceiling between attempts
        self.client.reconnect_delay_set(min_delay=1, max_delay=settings.mqtt_reconnect_max_sec)
        self.client.on_connect = self._on_connect
        self.client.on_connect_fail = self._on_connect_fail
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

    # -- lifecycle ------------------------------------------------------

    def start(self) -> None:
        """Connect asynchronously and start paho's network thread."""
        logger.info(
            "Connecting to MQTT broker %s:%d as %s",
            self.settings.mqtt_host, self.settings.mqtt_port, self.settings.mqtt_client_id,
        )
        self.client.connect_async(
            self.settings.mqtt_host, self.settings.mqtt_port, self.settings.mqtt_keepalive,
        )
        self.client.loop_start()

    def stop(self) -> None:
        logger.info("Stopping MQTT transport")
        self.client.disconnect()
        self.client.loop_stop()

    # -- outbound -------------------------------------------------------

    def publish_alert(self, wire: str) -> bool:
        return self._publish(self.settings.alert_topic, wire)

    def publish_barograph(self) -> bool:
        try:
            payload = self.barograph.to_payload()
        except StoreUnavailable as e:
            logger.warning("Barograph unavailable: %s", e)
            return False
        return self._publish(self.settings.barograph_topic, json.dumps(payload))

    def _publish(self, topic: str, payload: str) -> bool:
        if not self.connected:
            logger.debug("Not connected, dropping publish to %s", topic)
            return False
        info = self.client.publish(topic, payload)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning("Publish to %s failed: %s", topic, mqtt.error_string(info.rc))
            return False
        return True

    # -- inbound --------------------------------------------------------

    def handle_message(self, topic: str, payload: bytes) -> None:
        """Route one inbound message. Never raises on bad input."""
        try:
            if topic == self.settings.pressure_topic:
                self.buffer.offer_pressure(parse_sample(payload))
            elif topic == self.settings.temperature_topic:
                self.buffer.offer_temperature(parse_sample(payload))
            elif topic == self.settings.barograph_request_topic:
                if parse_barograph_request(payload).fetch:
                    self.publish_barograph()
            else:
                logger.debug("Ignoring message on unexpected topic %s", topic)
        except MalformedInput as e:
            logger.warning("Discarded message on %s: %s", topic, e)

    # -- paho callbacks -------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            self._log_refusal(reason_code)
            return
        logger.info("Connected to MQTT broker.")
        self.connected = True
        self._refusal_logged = False
        client.subscribe([
            (self.settings.pressure_topic, 0),
            (self.settings.temperature_topic, 0),
            (self.settings.barograph_request_topic, 0),
        ])

    def _on_connect_fail(self, client, userdata):
        self._log_refusal("connection refused or unreachable")

    def _log_refusal(self, reason) -> None:
        # Once per outage; reconnect attempts repeat until the broker is back
        if self._refusal_logged:
            return
        self._refusal_logged = True
        logger.error(
            "Unable to connect to MQTT broker on %s:%d: %s",
            self.settings.mqtt_host, self.settings.mqtt_port, reason,
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        if self.connected:
            logger.warning("Connection to MQTT broker lost: %s", reason_code)
        self.connected = False

    def _on_message(self, client, userdata, msg: Any) -> None:
        try:
            self.handle_message(msg.topic, msg.payload)
        except Exception:
            logger.exception("Failed to process message from topic %s", msg.topic)
