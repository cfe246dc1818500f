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

"""Bounded condition polling."""

from collections.abc import Callable
import datetime
import logging
import time
from typing import Union


def poll_until(
    predicate: Callable[[], bool],
    interval: Union[float, datetime.timedelta],
    max_attempts: int,
) -> bool:
  """Evaluates `predicate` on a fixed interval until it holds.

  The predicate is evaluated at most `max_attempts` times. Every false
  evaluation is followed by a sleep of `interval`, so a predicate that never
  holds returns False after about `interval * max_attempts`.

  Args:
    predicate: Side-effect-free check, may be called many times.
    interval: float in seconds or timedelta, the delay between checks.
    max_attempts: The maximum number of times to evaluate the predicate.

  Returns:
    True as soon as the predicate returns True, False if it never did.

  Raises:
    ValueError: If `max_attempts` is not positive.
  """
  if max_attempts < 1:
    raise ValueError(f'max_attempts must be positive, got {max_attempts}.')
  if isinstance(interval, datetime.timedelta):
    interval = interval.total_seconds()

  for attempt in range(1, max_attempts + 1):
    if predicate():
      logging.debug('Condition met after %d attempt(s).', attempt)
      return True
    time.sleep(interval)
  logging.debug('Condition not met after %d attempts.', max_attempts)
  return False


def attempts_for_timeout(
    timeout: datetime.timedelta,
    interval: datetime.timedelta,
) -> int:
  """Returns the number of attempts that fit `timeout` at `interval`."""
  if interval <= datetime.timedelta(0):
    raise ValueError(f'interval must be positive, got {interval}.')
  return max(1, int(timeout / interval))
