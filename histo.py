"""Fixed-shape, thread-safe counting histogram of non-negative ints."""
import io
import logging
import math
import sys
import threading
from contextlib import contextmanager

import numpy as np

from util import MAX_VALUE, search, make_boundaries, digits

logger = logging.getLogger(__name__)

BAR_LEN = 30

class HistogramShapeError(ValueError):
    pass

class Histogram:
    """Int histogram with buckets [ranges[i], ranges[i+1]) and a last,
    unbounded bucket [ranges[-1], inf).

    ranges and counts are public so callers can serialize them; writing to
    them directly bypasses the lock.
    """
    def __init__(self, num_bins, bin_first, bin_growth_factor=0.0):
        if num_bins < 2:
            logger.debug("rejecting num_bins=%s", num_bins)
            raise ValueError(f"num_bins must be >= 2, got {num_bins}")
        if bin_growth_factor != 0.0 and not bin_growth_factor > 1.0:
            logger.debug("rejecting bin_growth_factor=%s", bin_growth_factor)
            raise ValueError(f"bin_growth_factor must be 0.0 or > 1.0, got {bin_growth_factor}")
        self.ranges = make_boundaries(num_bins, bin_first, bin_growth_factor)
        self.counts = np.zeros(num_bins, dtype=np.uint64)
        self._bounds = [int(r) for r in self.ranges]
        if self._bounds[-1] == MAX_VALUE:
            logger.debug("boundaries saturated at %d", MAX_VALUE)
        self.total_count = 0
        self.total_value = 0
        self.min_value = MAX_VALUE
        self.max_value = 0
        self.lock = threading.RLock()
        logger.debug("histogram created: %d bins, first=%d, growth=%s, last=%d",
                     num_bins, bin_first, bin_growth_factor, self._bounds[-1])

    def add(self, value, weight=1):
        with self.lock:
            idx = search(self._bounds, value)
            if idx >= 0:
                self.counts[idx] += np.uint64(weight)
                self.total_count += weight
            # raw value, not value*weight
            self.total_value += value
            if value < self.min_value:
                self.min_value = value
            if value > self.max_value:
                self.max_value = value

    def add_all(self, src):
        """Merge the counts of src, which must have the same ranges, into
        this histogram. Both locks are held, always taken in id() order."""
        if not np.array_equal(self.ranges, src.ranges):
            raise HistogramShapeError(
                f"cannot merge histograms of different shapes "
                f"({len(src.ranges)} bins into {len(self.ranges)} bins)")
        first, second = sorted((self, src), key=id)
        with first.lock, second.lock:
            self.counts += src.counts
            self.total_count += src.total_count
            self.total_value += src.total_value
            self.min_value = min(self.min_value, src.min_value)
            self.max_value = max(self.max_value, src.max_value)

    def run_exclusive(self, fn, *args, **kwargs):
        """Call fn(self, *args, **kwargs) holding the lock.

        fn may call add() and emit_graph() on this histogram, but must not
        add_all() with another one: that takes the second lock out of id()
        order and can deadlock against a concurrent merge. Same for locked().
        """
        with self.lock:
            return fn(self, *args, **kwargs)

    @contextmanager
    def locked(self):
        with self.lock:
            yield self

    def mean(self):
        # total_value sums raw values per add() call, weights are not applied
        with self.lock:
            if self.total_count == 0:
                return 0.0
            return self.total_value / self.total_count

    def snapshot(self):
        with self.lock:
            return dict(ranges=self.ranges.tolist(),
                        counts=self.counts.tolist(),
                        total_count=self.total_count,
                        total_value=self.total_value,
                        min_value=self.min_value,
                        max_value=self.max_value)

    def emit_graph(self, prefix=None, buf=None):
        """Append an ascii graph to buf (a new StringIO if None) and return it.

        Each line looks like "[prefix]START+WIDTH=COUNT PCT% BAR", e.g.

             0+10=2  33.33% ********************
            10+10=1  50.00% **********
            20+ 0=3 100.00% ******************************

        PCT is cumulative; the last, unbounded bucket shows width 0.
        """
        if buf is None:
            buf = io.StringIO()
        else:
            buf.seek(0, io.SEEK_END)
        ranges = self._bounds
        n = len(ranges)
        max_width = max(ranges[i+1] - ranges[i] for i in range(n-1))
        with self.lock:
            counts = [int(c) for c in self.counts]
            tot_count = sum(counts)
            max_count = max(counts)

            fmt = "%%%dd+%%%dd=%%%dd%% 7.2f%%%%" % (
                digits(ranges[-1]), digits(max_width), digits(max_count))

            run_count = 0
            for i, c in enumerate(counts):
                if prefix:
                    buf.write(prefix)
                width = ranges[i+1] - ranges[i] if i < n-1 else 0
                run_count += c
                pct = 100.0 * run_count / tot_count if tot_count else 0.0
                buf.write(fmt % (ranges[i], width, c, pct))
                if c > 0:
                    buf.write(" ")
                    buf.write("*" * int(math.floor(BAR_LEN * c / max_count)))
                buf.write("\n")
        return buf

    def print(self, prefix=None, file=None):
        out = file if file is not None else sys.stdout
        out.write(self.emit_graph(prefix).getvalue())

    def __repr__(self):
        return (f"Histogram(bins={len(self._bounds)}, total_count={self.total_count}, "
                f"min={self.min_value}, max={self.max_value})")
