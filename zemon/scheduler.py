"""Refresh policy: decouples metric sampling from the frame rate."""


def should_refresh(now: float, last_update: float, interval: float) -> bool:
    """True iff at least *interval* seconds have passed since *last_update*.

    The caller moves ``last_update`` forward only when it actually samples,
    so the provider is called at most once per interval however fast the
    render loop spins.
    """
    return now - last_update >= interval
