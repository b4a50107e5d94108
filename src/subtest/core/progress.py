"""Progress display for long EM runs.

Wraps iterators with a progressbar2 bar written to stdout. EM runs usually stop
long before the iteration cap, so the bar is finalised in a try/finally block
and an early break leaves the terminal clean.
"""

import sys
from collections.abc import Iterable, Iterator

import progressbar


def progress_iterator(iterable: Iterable, total: int, desc: str = "") -> Iterator:
    """Wrap an iterable with a progressbar2 progress display.

    Args:
        iterable: Iterable to wrap.
        total: Maximum number of items (the bar's 100%).
        desc: Optional description prefix.

    Yields:
        Items from the wrapped iterable.
    """
    widgets = [
        f"{desc}: " if desc else "",
        progressbar.Counter(),
        f"/{total} ",
        progressbar.Bar(),
        " ",
        progressbar.Timer(),
    ]
    bar = progressbar.ProgressBar(max_value=total, widgets=widgets, fd=sys.stdout)
    bar.start()
    try:
        for i, item in enumerate(iterable):
            yield item
            bar.update(min(i + 1, total))
    finally:
        bar.finish(dirty=True)


def maybe_progress(
    iterable: Iterable, total: int, desc: str = "", enabled: bool = False
) -> Iterator:
    """Return ``progress_iterator`` when enabled, else the plain iterator."""
    if enabled:
        return progress_iterator(iterable, total, desc)
    return iter(iterable)
