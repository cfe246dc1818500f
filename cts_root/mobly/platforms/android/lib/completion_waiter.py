# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Bounded wait for an outcome signaled from another thread.

A `CompletionWaiter` bridges a callback-driven asynchronous operation to
synchronous test code. The producer (usually a worker or publisher thread)
calls `signal_success` or `signal_failure` exactly once; the test thread calls
`wait` with a deadline and gets back the terminal outcome, or `TIMED_OUT` if
the deadline passed first.

Example:

  waiter = completion_waiter.CompletionWaiter.create()
  start_async_operation(on_done=waiter.signal_success,
                        on_error=waiter.signal_failure)
  outcome = waiter.wait(datetime.timedelta(minutes=4))
  if outcome is completion_waiter.TIMED_OUT:
    ...
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
import threading
from typing import Optional, Union


@dataclasses.dataclass(frozen=True)
class Success:
  """The operation completed.

  Attributes:
    payload: Optional result reported by the operation, e.g. a file path.
  """
  payload: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class Failure:
  """The operation reported an error.

  Attributes:
    code: The error code reported by the operation.
  """
  code: int


@dataclasses.dataclass(frozen=True)
class Pending:
  """No terminal outcome has been recorded yet."""


@dataclasses.dataclass(frozen=True)
class TimedOut:
  """The wait deadline passed before a terminal outcome was recorded."""


PENDING = Pending()
TIMED_OUT = TimedOut()

Outcome = Union[Success, Failure, Pending]
WaitResult = Union[Success, Failure, TimedOut]


def is_terminal(outcome: Union[Outcome, TimedOut]) -> bool:
  """Returns True if the outcome is `Success` or `Failure`."""
  return isinstance(outcome, (Success, Failure))


def to_seconds(timeout: Union[float, datetime.timedelta]) -> float:
  """Converts a timeout to non-negative seconds."""
  if isinstance(timeout, datetime.timedelta):
    timeout = timeout.total_seconds()
  return max(float(timeout), 0.0)


class CompletionWaiter(object):
  """Single-assignment outcome cell with a bounded blocking wait.

  All state lives behind one lock. The first `signal_*` call records the
  terminal outcome and disarms the waiter; every later call is dropped.
  """

  def __init__(self) -> None:
    super(CompletionWaiter, self).__init__()
    self._lock = threading.Lock()
    self._condition = threading.Condition(self._lock)
    self._outcome: Outcome = PENDING
    self._armed = True

  @classmethod
  def create(cls) -> CompletionWaiter:
    """Creates a new armed waiter in `Pending` state."""
    return cls()

  @property
  def outcome(self) -> Outcome:
    """The currently recorded outcome, without blocking."""
    with self._lock:
      return self._outcome

  @property
  def is_armed(self) -> bool:
    """True until a terminal outcome is recorded."""
    with self._lock:
      return self._armed

  def is_set(self) -> bool:
    """Returns True if a terminal outcome has been recorded."""
    return not self.is_armed

  def signal_success(self, payload: Optional[str] = None) -> bool:
    """Records `Success(payload)` if no outcome was recorded yet.

    Args:
      payload: Optional result of the operation.

    Returns:
      True if this call recorded the outcome, False if it was dropped.
    """
    return self._record(Success(payload))

  def signal_failure(self, code: int) -> bool:
    """Records `Failure(code)` if no outcome was recorded yet.

    Args:
      code: The error code of the operation.

    Returns:
      True if this call recorded the outcome, False if it was dropped.
    """
    return self._record(Failure(code))

  def wait(
      self,
      timeout: Union[float, datetime.timedelta],
  ) -> WaitResult:
    """Blocks until a terminal outcome is recorded or the timeout elapses.

    Args:
      timeout: float in seconds or timedelta, the maximum time to block.

    Returns:
      The recorded `Success` or `Failure`, or `TIMED_OUT` if the deadline
      passed first.
    """
    with self._condition:
      if self._condition.wait_for(lambda: not self._armed,
                                  timeout=to_seconds(timeout)):
        return self._outcome
      return TIMED_OUT

  def _record(self, outcome: Union[Success, Failure]) -> bool:
    with self._condition:
      if not self._armed:
        logging.debug(
            'Dropping %s, outcome already recorded: %s', outcome, self._outcome
        )
        return False
      self._outcome = outcome
      self._armed = False
      self._condition.notify_all()
      return True

  def __repr__(self) -> str:
    return f'<CompletionWaiter outcome={self.outcome}>'
