"""
Utilities for the private voting client
Logging setup, pipeline performance monitoring, ABI word codec, result persistence
"""

import logging
import json
import time
import hashlib
import secrets
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Union
import platform
from dataclasses import dataclass, asdict

import numpy as np
import psutil

WORD_SIZE = 32


@dataclass
class PerformanceMetrics:
    operation: str
    duration_seconds: float
    cpu_percent: float
    memory_mb: float
    timestamp: float
    additional_data: Dict[str, Any] = None


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'


def setup_logging(log_level: str = "INFO", log_dir: Path = Path("logs"),
                  log_file: Optional[Path] = None) -> logging.Logger:
    """Log to a timestamped file under log_dir and to stderr"""
    if log_file is None:
        stamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = Path(log_dir) / f"private_voting_{stamp}.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # basicConfig is a no-op once the root logger has handlers
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(log_file), logging.StreamHandler()],
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging to {log_file} at {log_level.upper()}")
    return logger


class PerformanceMonitor:
    """Times pipeline operations, usable as a context manager"""

    def __init__(self):
        self.metrics: List[PerformanceMetrics] = []
        self.process = psutil.Process()

    def start_operation(self, operation_name: str) -> 'OperationContext':
        """Start monitoring an operation - returns context manager"""
        return OperationContext(self, operation_name)

    def record_metric(self, metric: PerformanceMetrics):
        self.metrics.append(metric)

    def get_summary(self) -> Dict[str, Any]:
        """Per-operation statistics over all recorded metrics"""
        if not self.metrics:
            return {
                'total_operations': 0,
                'total_duration': 0.0,
                'operations': {}
            }

        operation_groups: Dict[str, List[PerformanceMetrics]] = {}
        for metric in self.metrics:
            operation_groups.setdefault(metric.operation, []).append(metric)

        summary = {
            'total_operations': len(self.metrics),
            'operations': {}
        }

        for op_name, metrics in operation_groups.items():
            durations = np.array([m.duration_seconds for m in metrics])
            cpu_usages = np.array([m.cpu_percent for m in metrics])
            memory_usages = [m.memory_mb for m in metrics if m.memory_mb > 0]
            failures = sum(
                1 for m in metrics
                if m.additional_data and m.additional_data.get('exception'))

            summary['operations'][op_name] = {
                'count': len(metrics),
                'failures': failures,
                'total_duration': float(durations.sum()),
                'avg_duration': float(durations.mean()),
                'min_duration': float(durations.min()),
                'max_duration': float(durations.max()),
                'std_duration': float(durations.std()) if len(durations) > 1 else 0.0,
                'avg_cpu_percent': float(cpu_usages.mean()),
                'peak_memory_mb': max(memory_usages) if memory_usages else 0.0,
            }

        summary['total_duration'] = sum(
            op_data['total_duration']
            for op_data in summary['operations'].values()
        )

        return summary


class OperationContext:
    """Context manager for performance monitoring"""

    def __init__(self, monitor: PerformanceMonitor, operation_name: str):
        self.monitor = monitor
        self.operation_name = operation_name
        self.start_time = None
        self.start_memory = 0.0

    def _memory_mb(self) -> float:
        try:
            return self.monitor.process.memory_info().rss / 1024 / 1024
        except psutil.Error as e:
            logging.debug(f"Performance monitoring error: {e}")
            return 0.0

    def _cpu_percent(self) -> float:
        # Process CPU since the previous call; the first call only primes it
        try:
            return self.monitor.process.cpu_percent(interval=None)
        except psutil.Error as e:
            logging.debug(f"Performance monitoring error: {e}")
            return 0.0

    def __enter__(self):
        self.start_time = time.time()
        self.start_memory = self._memory_mb()
        self._cpu_percent()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time

        metric = PerformanceMetrics(
            operation=self.operation_name,
            duration_seconds=duration,
            cpu_percent=self._cpu_percent(),
            memory_mb=max(self.start_memory, self._memory_mb()),
            timestamp=self.start_time,
            additional_data={'exception': exc_type is not None}
        )

        self.monitor.record_metric(metric)
        return False


def get_system_info() -> Dict[str, Any]:
    """Host information attached to saved reports"""
    vm = psutil.virtual_memory()
    return {
        'platform': platform.platform(),
        'python_version': platform.python_version(),
        'machine': platform.machine(),
        'cpu_count_logical': psutil.cpu_count(logical=True),
        'total_memory_gb': round(vm.total / 1024 / 1024 / 1024, 2),
        'timestamp': datetime.now().isoformat()
    }


def compute_hash(data: Union[str, bytes, Dict, List, Any]) -> str:
    """Compute SHA256 hash of data"""
    if isinstance(data, (dict, list)):
        data = json.dumps(data, sort_keys=True, default=str)

    if isinstance(data, str):
        data = data.encode('utf-8')
    elif not isinstance(data, bytes):
        data = str(data).encode('utf-8')

    return hashlib.sha256(data).hexdigest()


def generate_vote_id(prefix: str = "vote") -> str:
    """Millisecond timestamp id with a random suffix"""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


# ABI word codec for clear values (uint256[] packed as 32-byte words)


def abi_encode_uint256(values: Sequence[int]) -> str:
    """Encode integers as consecutive big-endian 32-byte words, 0x-prefixed"""
    encoded = b""
    for value in values:
        if value < 0 or value >= 1 << (8 * WORD_SIZE):
            raise ValueError(f"Value {value} does not fit in uint256")
        encoded += int(value).to_bytes(WORD_SIZE, "big")
    return "0x" + encoded.hex()


def abi_decode_uint256(encoded: str) -> List[int]:
    """Inverse of abi_encode_uint256"""
    raw = bytes.fromhex(encoded[2:] if encoded.startswith("0x") else encoded)
    if len(raw) % WORD_SIZE != 0:
        raise ValueError(
            f"Encoded length {len(raw)} is not a multiple of {WORD_SIZE}")
    return [
        int.from_bytes(raw[i:i + WORD_SIZE], "big")
        for i in range(0, len(raw), WORD_SIZE)
    ]


def save_results(results: Dict[str, Any], filepath: Path):
    """Save results to JSON file"""
    filepath.parent.mkdir(parents=True, exist_ok=True)

    def convert_to_serializable(obj):
        if hasattr(obj, '__dataclass_fields__'):
            return convert_to_serializable(asdict(obj))
        elif isinstance(obj, dict):
            return {k: convert_to_serializable(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [convert_to_serializable(item) for item in obj]
        elif isinstance(obj, (np.integer, np.floating)):
            return obj.item()
        elif isinstance(obj, bytes):
            return obj.hex()
        elif isinstance(obj, Path):
            return str(obj)
        elif hasattr(obj, 'value') and hasattr(obj, 'name'):  # Enum members
            return obj.value
        elif isinstance(obj, datetime):
            return obj.isoformat()
        return obj

    enhanced_results = {
        'metadata': {
            'generated_at': datetime.now().isoformat(),
            'system_info': get_system_info(),
            'file_path': str(filepath)
        },
        'data': convert_to_serializable(results)
    }

    with open(filepath, 'w') as f:
        json.dump(enhanced_results, f, indent=2, default=str)

    logging.info(f"Results saved to {filepath}")


def create_performance_report(metrics: PerformanceMonitor) -> str:
    """Plain-text breakdown of pipeline timings"""
    summary = metrics.get_summary()
    rule = "=" * 80

    lines = [
        rule,
        "PRIVATE VOTING CLIENT - PIPELINE PERFORMANCE REPORT",
        rule,
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Pipeline runs: {summary['total_operations']}"
        f" ({format_duration(summary['total_duration'])} total)",
        "",
    ]

    if not summary['operations']:
        lines.append("No pipeline runs recorded.")

    for op_name, op in summary['operations'].items():
        succeeded = op['count'] - op['failures']
        lines.append(f"{op_name.upper()}: {succeeded}/{op['count']} completed")
        lines.append(
            f"  avg {format_duration(op['avg_duration'])}"
            f"  min {format_duration(op['min_duration'])}"
            f"  max {format_duration(op['max_duration'])}"
            f"  std {op['std_duration']:.4f}s")
        if op['avg_cpu_percent'] > 0:
            lines.append(f"  avg CPU {op['avg_cpu_percent']:.1f}%")
        if op['peak_memory_mb'] > 0:
            lines.append(f"  peak RSS {op['peak_memory_mb']:.1f} MB")

    lines.append(rule)
    return "\n".join(lines)


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format"""
    if seconds < 1:
        return f"{seconds*1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.2f}s"
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}m {secs:.1f}s"


__all__ = [
    'PerformanceMetrics',
    'PerformanceMonitor',
    'OperationContext',
    'setup_logging',
    'get_system_info',
    'compute_hash',
    'generate_vote_id',
    'abi_encode_uint256',
    'abi_decode_uint256',
    'save_results',
    'create_performance_report',
    'format_duration',
]
