#!/usr/bin/env python3
"""
Mock Prometheus server for trying promtestgen locally.

Serves a small rule set through /api/v1/rules and deterministic samples
through /api/v1/query and /api/v1/query_range.

    python examples/mock_prometheus.py --port 9090
    promtestgen generate -url http://127.0.0.1:9090
"""

import argparse
import json
import re
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qs, urlparse

RULE_GROUPS = [
    {
        "name": "node.rules",
        "file": "/etc/prometheus/rules/node.yaml",
        "interval": 60,
        "rules": [
            {
                "type": "recording",
                "name": "instance:node_cpu:rate1m",
                "query": 'rate(node_cpu_seconds_total{mode!="idle"}[1m])',
                "labels": {},
            },
            {
                "type": "recording",
                "name": "job:node_cpu:sum",
                "query": "sum by (job) (instance:node_cpu:rate1m)",
                "labels": {},
            },
            {
                "type": "alerting",
                "name": "NodeCPUHigh",
                "query": "job:node_cpu:sum > 0.9",
                "duration": 300,
                "labels": {"severity": "warning"},
                "annotations": {"summary": "CPU usage is high"},
            },
        ],
    }
]

SERIES = {
    "node_cpu_seconds_total": [
        {"__name__": "node_cpu_seconds_total", "instance": "node-1", "job": "node", "mode": "user"},
        {"__name__": "node_cpu_seconds_total", "instance": "node-2", "job": "node", "mode": "user"},
    ],
    "instance:node_cpu:rate1m": [
        {"__name__": "instance:node_cpu:rate1m", "instance": "node-1", "job": "node", "mode": "user"},
        {"__name__": "instance:node_cpu:rate1m", "instance": "node-2", "job": "node", "mode": "user"},
    ],
    "job:node_cpu:sum": [
        {"__name__": "job:node_cpu:sum", "job": "node"},
    ],
}

RANGE_SELECTOR = re.compile(r"^(?P<name>[a-zA-Z_:][a-zA-Z0-9_:]*)\[(?P<minutes>\d+)m\]$")


def sample_value(index: int, timestamp: float) -> str:
    """Monotonic counter-like value for series ``index`` at ``timestamp``."""
    return str(index * 100 + int(timestamp // 60) % 1000)


def matrix(name: str, timestamps: list) -> list:
    return [
        {
            "metric": labels,
            "values": [[ts, sample_value(i, ts)] for ts in timestamps],
        }
        for i, labels in enumerate(SERIES.get(name, []))
    ]


class MockPrometheusHandler(BaseHTTPRequestHandler):
    """Handler for mock Prometheus API requests."""

    def log_message(self, format, *args):
        """Silence per-request logging."""

    def do_GET(self):
        """Handle GET requests."""
        parsed_url = urlparse(self.path)
        path = parsed_url.path
        query_params = parse_qs(parsed_url.query)

        if path == "/api/v1/rules":
            self._send_json_response({"status": "success", "data": {"groups": RULE_GROUPS}})
        elif path == "/api/v1/query":
            self._handle_instant_query(query_params)
        elif path == "/api/v1/query_range":
            self._handle_range_query(query_params)
        else:
            self._send_error(404, f"Path not found: {path}")

    def _handle_instant_query(self, params):
        """Handle ``name[Nm]`` as a range vector and ``name`` as an instant vector."""
        query = params.get("query", [""])[0]
        at = float(params.get("time", ["0"])[0]) // 60 * 60

        match = RANGE_SELECTOR.match(query)
        if match:
            minutes = int(match.group("minutes"))
            timestamps = [at - 60 * i for i in range(minutes - 1, -1, -1)]
            data = {"resultType": "matrix", "result": matrix(match.group("name"), timestamps)}
        else:
            data = {
                "resultType": "vector",
                "result": [
                    {"metric": labels, "value": [at, sample_value(i, at)]}
                    for i, labels in enumerate(SERIES.get(query, []))
                ],
            }

        self._send_json_response({"status": "success", "data": data})

    def _handle_range_query(self, params):
        """Handle range query."""
        query = params.get("query", [""])[0]
        start = float(params["start"][0])
        end = float(params["end"][0])
        step = float(params.get("step", ["60"])[0])

        timestamps = []
        current = start
        while current <= end:
            timestamps.append(current)
            current += step

        self._send_json_response(
            {"status": "success", "data": {"resultType": "matrix", "result": matrix(query, timestamps)}}
        )

    def _send_json_response(self, data, status_code=200):
        """Send JSON response."""
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(json.dumps(data).encode())

    def _send_error(self, status_code, message):
        """Send error response."""
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        error = {
            "status": "error",
            "errorType": "bad_data",
            "error": message,
        }
        self.wfile.write(json.dumps(error).encode())


def main():
    """Run mock Prometheus server."""
    parser = argparse.ArgumentParser(description="Mock Prometheus server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=9090, help="Port to bind to")
    args = parser.parse_args()

    server = HTTPServer((args.host, args.port), MockPrometheusHandler)

    print(f"Mock Prometheus server running on http://{args.host}:{args.port}")
    print("Press Ctrl+C to stop")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.shutdown()


if __name__ == "__main__":
    main()
