"""
Message bus layer - the MQTT side of the gateway
"""

from .base import BusClient, MessageCallback
from .mqtt import MqttBusClient

__all__ = ["BusClient", "MessageCallback", "MqttBusClient"]
