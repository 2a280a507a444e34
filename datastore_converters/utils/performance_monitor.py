#!/usr/bin/env python3

"""
Run monitoring for converter runs: per-file timing, record counts and
resident memory against the configured limit.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

import psutil

from ..core.exceptions import MemoryLimitError


@dataclass
class PerformanceMetrics:
    """Timing, memory and record counts for one phase."""
    start_time: float
    end_time: Optional[float] = None
    peak_memory_mb: float = 0.0
    current_memory_mb: float = 0.0
    records_count: int = 0
    phase_name: str = ""

    @property
    def elapsed_time(self) -> float:
        if self.end_time is None:
            return time.time() - self.start_time
        return self.end_time - self.start_time

    @property
    def records_per_second(self) -> float:
        elapsed = self.elapsed_time
        if elapsed > 0 and self.records_count > 0:
            return self.records_count / elapsed
        return 0.0


class PerformanceMonitor:
    """Tracks phases of a converter run and enforces the memory limit."""

    def __init__(self, memory_limit_mb: int = 4096, enabled: bool = True):
        self.memory_limit_mb = memory_limit_mb
        self.enabled = enabled
        self.start_time = time.time()
        self.phase_metrics: Dict[str, PerformanceMetrics] = {}
        self.current_phase: Optional[str] = None
        self.process = psutil.Process()

    def get_memory_usage(self) -> float:
        """Resident memory of this process in MB."""
        memory_mb = self.process.memory_info().rss / 1024 / 1024

        if self.current_phase and self.current_phase in self.phase_metrics:
            metrics = self.phase_metrics[self.current_phase]
            metrics.current_memory_mb = memory_mb
            metrics.peak_memory_mb = max(metrics.peak_memory_mb, memory_mb)

        return memory_mb

    def check_memory_limit(self) -> bool:
        """Raise MemoryLimitError when resident memory is over the limit."""
        if not self.enabled:
            return True
        current_memory = self.get_memory_usage()

        if current_memory > self.memory_limit_mb:
            logging.warning(f"Memory usage exceeded limit: {current_memory:.1f}MB > {self.memory_limit_mb}MB")
            raise MemoryLimitError("Memory usage exceeded limit", current_memory, self.memory_limit_mb)

        return True

    def start_phase(self, phase_name: str) -> None:
        if self.current_phase:
            self.end_phase()

        self.current_phase = phase_name
        self.phase_metrics[phase_name] = PerformanceMetrics(
            start_time=time.time(),
            phase_name=phase_name,
            current_memory_mb=self.get_memory_usage()
        )
        logging.info(f"Started phase: {phase_name}")

    def end_phase(self) -> Optional[PerformanceMetrics]:
        if not self.current_phase:
            return None

        metrics = self.phase_metrics[self.current_phase]
        metrics.current_memory_mb = self.get_memory_usage()
        metrics.end_time = time.time()

        logging.info(f"Completed phase {self.current_phase} in {metrics.elapsed_time:.2f}s "
                     f"({metrics.records_count:,} records, peak memory: {metrics.peak_memory_mb:.1f}MB)")
        self.current_phase = None
        return metrics

    def record_operations(self, count: int) -> None:
        """Add to the record count of the current phase."""
        if self.current_phase and self.current_phase in self.phase_metrics:
            self.phase_metrics[self.current_phase].records_count += count

    @contextmanager
    def phase_context(self, phase_name: str):
        self.start_phase(phase_name)
        try:
            yield self.phase_metrics[phase_name]
        finally:
            self.end_phase()

    def get_total_elapsed_time(self) -> float:
        return time.time() - self.start_time

    def get_peak_memory(self) -> float:
        if not self.phase_metrics:
            return self.get_memory_usage()
        return max(metrics.peak_memory_mb for metrics in self.phase_metrics.values())

    def get_performance_summary(self) -> Dict[str, Any]:
        summary = {
            "total_elapsed_time": self.get_total_elapsed_time(),
            "peak_memory_mb": self.get_peak_memory(),
            "memory_limit_mb": self.memory_limit_mb,
            "records": sum(metrics.records_count for metrics in self.phase_metrics.values()),
            "phases": {}
        }
        for phase_name, metrics in self.phase_metrics.items():
            summary["phases"][phase_name] = {
                "elapsed_time": metrics.elapsed_time,
                "records_count": metrics.records_count,
                "records_per_second": metrics.records_per_second,
                "peak_memory_mb": metrics.peak_memory_mb
            }
        return summary

    def log_performance_report(self) -> None:
        summary = self.get_performance_summary()

        logging.info("=" * 50)
        logging.info("CONVERSION REPORT")
        logging.info("=" * 50)
        logging.info(f"Total time: {summary['total_elapsed_time']:.2f} seconds")
        logging.info(f"Records: {summary['records']:,}")
        logging.info(f"Peak memory: {summary['peak_memory_mb']:.1f} MB of {summary['memory_limit_mb']} MB")

        for phase_name, phase_data in summary['phases'].items():
            logging.info(f"  {phase_name}: {phase_data['elapsed_time']:.2f}s "
                         f"({phase_data['records_count']:,} records, "
                         f"{phase_data['records_per_second']:.1f} records/s)")
