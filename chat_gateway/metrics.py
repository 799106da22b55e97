"""
Metrics tracking for chat latency, token usage and mode fallbacks.
"""
import statistics
from collections import Counter, deque
from typing import Dict, Optional


class MetricsTracker:
    def __init__(self, max_samples: int = 1000):
        self.max_samples = max_samples
        self.latencies: deque = deque(maxlen=max_samples)
        self.token_usages: deque = deque(maxlen=max_samples)
        self.mode_counts: Counter = Counter()
        self.error_categories: Counter = Counter()
        self.request_count = 0
        self.error_count = 0
        self.fallback_count = 0

    def record_request(
        self,
        latency_ms: float,
        mode: Optional[str] = None,
        used_fallback: bool = False,
        usage: Optional[Dict[str, int]] = None,
        error_category: Optional[str] = None,
    ):
        """Record one /api/chat call."""
        self.request_count += 1
        if error_category:
            self.error_count += 1
            self.error_categories[error_category] += 1
            return

        self.latencies.append(latency_ms)
        if mode:
            self.mode_counts[mode] += 1
        if used_fallback:
            self.fallback_count += 1
        if usage:
            input_tokens = usage.get("input_tokens", 0)
            output_tokens = usage.get("output_tokens", 0)
            self.token_usages.append({
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "total_tokens": usage.get("total_tokens") or input_tokens + output_tokens,
            })

    def get_stats(self) -> Dict:
        """Get aggregated statistics."""
        n = len(self.latencies)
        if n:
            sorted_latencies = sorted(self.latencies)
            latency_stats = {
                "p50": sorted_latencies[int(n * 0.50)],
                "p95": sorted_latencies[int(n * 0.95)],
                "p99": sorted_latencies[int(n * 0.99)],
                "avg": statistics.mean(sorted_latencies),
                "min": sorted_latencies[0],
                "max": sorted_latencies[-1],
                "count": n,
            }
        else:
            latency_stats = {"p50": None, "p95": None, "p99": None, "avg": None, "min": None, "max": None, "count": 0}

        count = len(self.token_usages)
        total_input = sum(u["input_tokens"] for u in self.token_usages)
        total_output = sum(u["output_tokens"] for u in self.token_usages)
        total = sum(u["total_tokens"] for u in self.token_usages)
        token_stats = {
            "total_input": total_input,
            "total_output": total_output,
            "total": total,
            "avg_input": total_input / count if count > 0 else 0,
            "avg_output": total_output / count if count > 0 else 0,
            "avg_total": total / count if count > 0 else 0,
            "count": count,
        }

        return {
            "request_count": self.request_count,
            "error_count": self.error_count,
            "success_count": self.request_count - self.error_count,
            "fallback_count": self.fallback_count,
            "modes": dict(self.mode_counts),
            "errors": dict(self.error_categories),
            "latency": latency_stats,
            "tokens": token_stats,
        }

    def reset(self):
        """Reset all metrics."""
        self.latencies.clear()
        self.token_usages.clear()
        self.mode_counts.clear()
        self.error_categories.clear()
        self.request_count = 0
        self.error_count = 0
        self.fallback_count = 0


# Global metrics tracker instance
metrics = MetricsTracker()
