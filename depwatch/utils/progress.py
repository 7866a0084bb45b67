"""
Terminal progress rendering for batch version checks.
"""
from typing import Any, Optional

from tqdm import tqdm

from depwatch.models import ProgressInfo


class TqdmProgressReporter:
    """
    Progress callback that drives a ``tqdm`` bar.

    Pass an instance as ``on_progress`` to
    :meth:`~depwatch.core.version_checker.VersionChecker.resolve_many`. The bar
    is created on the first event, when the total becomes known.

    Args:
        desc: Label shown in front of the bar
        **tqdm_kwargs: Extra keyword arguments forwarded to ``tqdm``
    """

    def __init__(self, desc: str = "Checking dependencies", **tqdm_kwargs: Any):
        self.desc = desc
        self.tqdm_kwargs = tqdm_kwargs
        self.bar: Optional[tqdm] = None
        self.last: Optional[ProgressInfo] = None

    def __call__(self, progress: ProgressInfo) -> None:
        if self.bar is None:
            self.bar = tqdm(total=progress.total, desc=self.desc, unit="pkg", **self.tqdm_kwargs)

        self.bar.update(progress.current - self.bar.n)
        if progress.message:
            self.bar.set_postfix_str(progress.message, refresh=False)
        self.last = progress

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
