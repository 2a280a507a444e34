#!/usr/bin/env python3

"""Run monitoring utilities."""

from .performance_monitor import PerformanceMetrics, PerformanceMonitor

__all__ = ['PerformanceMetrics', 'PerformanceMonitor']
