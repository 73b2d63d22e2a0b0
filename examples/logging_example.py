"""Demonstrates how to enable and configure logging in splitkit.

splitkit logging is disabled by default. Users opt in by calling ``enable_logging()``,
which returns a ``LoggingHandle``. The handle can be used as a context manager
(``with enable_logging(): ...``) or disabled manually via ``handle.disable()``.
When the last active handle is disabled, splitkit logging is automatically turned off.

Key concepts shown here:

- ``level``: controls the minimum log level. The custom ``SEARCH`` level
  (numeric value 15, between DEBUG and INFO) surfaces one record per strategy
  invocation and is the default. ``"DEBUG"`` adds every candidate score.
- ``log_format``: ``"short"`` shows ``timestamp | level | function - message``;
  ``"full"`` adds the module and line number.
- The selected split of a node is logged at INFO.
- Automatic cleanup: logging is re-disabled when the context manager exits.
"""

import polars as pl

from splitkit import SplitConfig, SplitFrame, enable_logging, find_best_split, partition_rows

df_weather = pl.DataFrame({
    "outlook": ["sunny", "sunny", "overcast", "rain", "rain", "rain", "overcast", "sunny", "sunny", "rain"],
    "temperature": [85.0, 80.0, 83.0, 70.0, 68.0, 65.0, 64.0, 72.0, None, 75.0],
    "windy": [False, True, False, False, False, True, True, False, False, None],
    "play": ["no", "no", "yes", "yes", "yes", "no", "yes", "no", "yes", "yes"],
})
frame = SplitFrame(df_weather)

# Enable logging at DEBUG level with full log format to see every candidate score
with enable_logging(
    level="DEBUG",
    log_format="full",
):
    config = SplitConfig.c45(min_count=2, missing_penalty=True)
    best = find_best_split(frame, "play", config=config)

    if best is not None:
        print(f"\nBest split: {best}\n")
        for group in partition_rows(frame, best, config=config):
            print(f"{group.predicate}: rows={group.rows.tolist()} weights={group.weights.round(3).tolist()}")

# Logging automatically disabled here
