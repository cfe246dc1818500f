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

import datetime
import time
import unittest
from unittest import mock

from cts_root.mobly.platforms.android.lib import polling

_INTERVAL = datetime.timedelta(milliseconds=100)


class PollingTest(unittest.TestCase):

  def test_poll_until_succeeds_on_fifth_check(self):
    predicate = mock.Mock(side_effect=[False] * 4 + [True])
    start = time.monotonic()

    self.assertTrue(polling.poll_until(predicate, _INTERVAL, max_attempts=50))

    elapsed = time.monotonic() - start
    self.assertEqual(predicate.call_count, 5)
    self.assertGreaterEqual(elapsed, 0.35)
    self.assertLess(elapsed, 2)

  def test_poll_until_fails_after_full_budget(self):
    predicate = mock.Mock(return_value=False)
    start = time.monotonic()

    self.assertFalse(polling.poll_until(predicate, _INTERVAL, max_attempts=10))

    elapsed = time.monotonic() - start
    self.assertEqual(predicate.call_count, 10)
    self.assertGreaterEqual(elapsed, 0.95)

  @mock.patch.object(polling.time, 'sleep')
  def test_poll_until_does_not_sleep_when_true_at_once(self, mock_sleep):
    self.assertTrue(polling.poll_until(lambda: True, 5, max_attempts=3))

    mock_sleep.assert_not_called()

  @mock.patch.object(polling.time, 'sleep')
  def test_poll_until_sleeps_interval_seconds(self, mock_sleep):
    polling.poll_until(lambda: False, _INTERVAL, max_attempts=3)

    mock_sleep.assert_has_calls([mock.call(0.1)] * 3)

  def test_poll_until_rejects_non_positive_attempts(self):
    with self.assertRaises(ValueError):
      polling.poll_until(lambda: True, _INTERVAL, max_attempts=0)

  def test_attempts_for_timeout(self):
    self.assertEqual(
        polling.attempts_for_timeout(datetime.timedelta(seconds=25), _INTERVAL),
        250)
    self.assertEqual(
        polling.attempts_for_timeout(datetime.timedelta(0), _INTERVAL), 1)
    with self.assertRaises(ValueError):
      polling.attempts_for_timeout(
          datetime.timedelta(seconds=1), datetime.timedelta(0))


if __name__ == '__main__':
  unittest.main()
