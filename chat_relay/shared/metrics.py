#!/usr/bin/env python3
"""
Metrics definitions for the chat relay.
"""

import prometheus_client

RELAY_REQUESTS = prometheus_client.Counter(
    'relay_requests_total', 'Chat relay requests by terminal outcome', ['outcome']
)
FORWARDED_BYTES = prometheus_client.Counter(
    'relay_forwarded_bytes_total', 'Bytes forwarded from the upstream stream to clients'
)
ACTIVE_STREAMS = prometheus_client.Gauge('relay_active_streams', 'Number of streams currently being relayed')
