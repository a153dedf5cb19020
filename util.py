import math
import numpy as np

MAX_VALUE = 2**64 - 1

def search(arr, value):
    # last index where arr[i] <= value, -1 if none
    lo, hi = 0, len(arr)
    while lo < hi:
        mid = lo + (hi - lo) // 2
        if arr[mid] <= value:
            lo = mid + 1
        else:
            hi = mid
    return lo - 1

def make_boundaries(num_bins:int, bin_first:int, bin_growth_factor:float=0.0):
    # boundaries past uint64 saturate at MAX_VALUE, leaving empty zero-width bins
    out = [0]*num_bins
    out[1] = min(bin_first, MAX_VALUE)
    for i in range(2, num_bins):
        prev = out[i-1]
        if prev == MAX_VALUE:
            out[i] = MAX_VALUE
        elif bin_growth_factor == 0.0:
            out[i] = min(prev + bin_first, MAX_VALUE)
        else:
            nxt = bin_growth_factor * prev
            out[i] = MAX_VALUE if math.isinf(nxt) else min(math.ceil(nxt), MAX_VALUE)
    return np.array(out, dtype=np.uint64)

def digits(n):
    return len(str(int(n)))
