#!/usr/bin/env python3
# ============================================================================
# CLI EVENT SUBMISSION TOOL
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Tool - Put events on the relay's Service Bus queue
# PURPOSE: Test the relay end to end without an upstream producer
# CREATED: 19 OCT 2026
# ============================================================================
"""
Send text events to the relay queue.

Usage:
    # Single event
    python tools/send_event.py "hello world"

    # Several copies, with an application property
    python tools/send_event.py "ping" --count 5 --property source=cli

    # Explicit queue
    python tools/send_event.py "hello" --queue relay-events

Requires:
    SERVICEBUS_CONNECTION_STRING env var (or SERVICE_BUS_FQDN for managed identity)
"""

import argparse
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from azure.identity import DefaultAzureCredential
from azure.servicebus import ServiceBusClient

from infrastructure.service_bus import send_event


def parse_properties(values):
    """Turn ["k=v", ...] into a dict."""
    properties = {}
    for item in values or []:
        if "=" not in item:
            raise ValueError(f"Property must be key=value, got {item!r}")
        key, value = item.split("=", 1)
        properties[key.strip()] = value
    return properties


def build_client() -> ServiceBusClient:
    connection_string = os.environ.get("SERVICEBUS_CONNECTION_STRING")
    if connection_string:
        return ServiceBusClient.from_connection_string(connection_string)

    namespace = os.environ.get("SERVICE_BUS_FQDN")
    if not namespace:
        raise ValueError("Set SERVICEBUS_CONNECTION_STRING or SERVICE_BUS_FQDN")
    return ServiceBusClient(
        fully_qualified_namespace=namespace,
        credential=DefaultAzureCredential(),
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Send events to the relay queue")
    parser.add_argument("message", help="Event body (UTF-8 text)")
    parser.add_argument("--queue", default=os.environ.get("RELAY_QUEUE", "relay-events"))
    parser.add_argument("--count", type=int, default=1, help="Number of copies to send")
    parser.add_argument(
        "--property",
        action="append",
        default=[],
        help="Application property key=value (repeatable)",
    )
    args = parser.parse_args(argv)

    try:
        properties = parse_properties(args.property)
        client = build_client()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    with client:
        for _ in range(args.count):
            send_event(client, args.queue, args.message, properties)

    print(f"Sent {args.count} event(s) to {args.queue}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
