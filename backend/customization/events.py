import logging

from django.dispatch import Signal
from django.utils.module_loading import import_string

from .conf import get_setting

logger = logging.getLogger(__name__)

# Sent with ``event_name`` and ``payload`` keyword arguments.
customization_event = Signal()


class EventSink:
    """
    Destination for domain events. Delivery is at-most-once: the engine calls
    ``emit`` after a transition has been written and never retries.
    """

    def emit(self, event_name, payload):
        raise NotImplementedError


class LoggingEventSink(EventSink):
    def emit(self, event_name, payload):
        logger.info("event %s %s", event_name, payload)


class SignalEventSink(EventSink):
    """Hands events to in-process receivers connected to ``customization_event``."""

    def emit(self, event_name, payload):
        for receiver, response in customization_event.send_robust(
            sender=self.__class__, event_name=event_name, payload=payload
        ):
            if isinstance(response, Exception):
                logger.error("Receiver %r failed for %s: %s", receiver, event_name, response)


def get_event_sink():
    return import_string(get_setting("EVENT_SINK"))()


def publish(sink, event_name, payload):
    try:
        sink.emit(event_name, payload)
    except Exception:
        logger.exception("Failed to publish %s", event_name)
