# rvt_ledger/monitoring.py
import errno
import time
import psutil
import socket
import threading
import logging
from socketserver import ThreadingMixIn
from wsgiref.simple_server import make_server, WSGIServer
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry, generate_latest, write_to_textfile
from prometheus_client.exposition import make_wsgi_app

logger = logging.getLogger(__name__)


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """Serves each scrape on its own thread."""
    allow_reuse_address = True
    daemon_threads = True


class Monitor:
    """Prometheus metrics for one ledger instance, kept in an isolated registry."""

    def __init__(self, host: str = "127.0.0.1", port: int = 9090):
        self.host = host
        self.port = port
        self.server = None
        self.thread = None
        self.registry = CollectorRegistry()

        self.operations = Counter('ledger_operations_total', 'Ledger operations by outcome', ['operation', 'status'], registry=self.registry)
        self.latency = Histogram('ledger_operation_latency_seconds', 'Latency of ledger operations', ['operation'], registry=self.registry)
        self.log_length = Gauge('ledger_log_length', 'Number of transactions in the log', registry=self.registry)
        self.total_supply = Gauge('ledger_total_supply', 'Total token supply in base units', registry=self.registry)
        self.cpu_usage = Gauge('system_cpu_percent', 'Current CPU usage percent', registry=self.registry)
        self.memory_usage = Gauge('system_memory_percent', 'Current memory usage percent', registry=self.registry)

    def start_server(self, max_retries: int = 5, retry_delay: float = 2):
        """Starts the HTTP exporter on a daemon thread, retrying while the port is busy."""
        app = make_wsgi_app(self.registry)

        for attempt in range(max_retries):
            try:
                self.server = make_server(self.host, self.port, app, ThreadingWSGIServer)
                self.server.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                break
            except OSError as e:
                if e.errno != errno.EADDRINUSE or attempt == max_retries - 1:
                    logger.error(f"Failed to bind metrics server to {self.host}:{self.port}: {e}")
                    raise
                logger.warning(f"Port {self.port} in use, retrying in {retry_delay}s (attempt {attempt + 1}/{max_retries})")
                time.sleep(retry_delay)

        # port 0 asks the OS for a free port
        self.port = self.server.server_port
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        logger.info(f"Prometheus server started on http://{self.host}:{self.port}")

    def stop_server(self):
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.thread.join()
            self.server = None
            self.thread = None
            logger.info("Prometheus server stopped")

    def record_operation(self, operation: str, status: str, latency: float):
        self.operations.labels(operation=operation, status=status).inc()
        self.latency.labels(operation=operation).observe(latency)

    def update(self, log_length: int, total_supply: int):
        self.log_length.set(log_length)
        self.total_supply.set(total_supply)
        self.cpu_usage.set(psutil.cpu_percent())
        self.memory_usage.set(psutil.virtual_memory().percent)

    def count(self, operation: str, status: str) -> float:
        """Current value of the operations counter for one label pair."""
        value = self.registry.get_sample_value(
            'ledger_operations_total', {'operation': operation, 'status': status}
        )
        return value or 0.0

    def exposition(self) -> bytes:
        """Metrics in the Prometheus text format."""
        return generate_latest(self.registry)

    def write_textfile(self, path: str):
        """Writes metrics for the node_exporter textfile collector."""
        write_to_textfile(path, self.registry)
        logger.info(f"Metrics written to {path}")
