from prometheus_client import Counter, Histogram

# Histogram for API call latency (seconds)
llu_api_call_latency_seconds = Histogram(
    'llu_api_call_latency_seconds',
    'Latency of LibreLinkUp API calls in seconds',
    ['method', 'endpoint']
)

# Counter for total API calls
# status: success, error
# endpoint: login, graph, logbook
llu_api_call_total = Counter(
    'llu_api_call_total',
    'Total LibreLinkUp API calls',
    ['method', 'endpoint', 'status']
)

# Readings and alarms produced from service payloads
readings_ingested_total = Counter(
    'llu_readings_ingested_total',
    'Total number of normalized readings and alarms ingested',
    ['kind']  # graph, logbook, alarm
)

# Wire records dropped because they could not be decoded
records_skipped_total = Counter(
    'llu_records_skipped_total',
    'Total number of wire records skipped during decoding',
    ['kind']
)

__all__ = [
    'llu_api_call_latency_seconds',
    'llu_api_call_total',
    'readings_ingested_total',
    'records_skipped_total',
]
