# invalidation.py
import logging
from typing import Callable, List, Set

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class InvalidationNotifier:
  """Staleness signal for views that render store data.

  Mutations call `invalidate(view)` after their commit succeeds. Listeners
  (e.g. a page cache in the presentation layer) are told immediately; the
  view also stays marked stale until someone calls `mark_fresh`.
  """

  def __init__(self):
    self._stale: Set[str] = set()
    self._listeners: List[Listener] = []

  def subscribe(self, listener: Listener) -> None:
    self._listeners.append(listener)

  def invalidate(self, view_key: str) -> None:
    self._stale.add(view_key)
    logger.info(f"Invalidated view {view_key}")
    for listener in list(self._listeners):
      # the write is already committed when listeners run
      try:
        listener(view_key)
      except Exception:
        logger.exception(f"Invalidation listener failed for {view_key}")

  def is_stale(self, view_key: str) -> bool:
    return view_key in self._stale

  def mark_fresh(self, view_key: str) -> None:
    self._stale.discard(view_key)
