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

import threading
import unittest

from cts_root.mobly.platforms.android.lib import completion_waiter
from cts_root.mobly.platforms.android.services import logcat_pubsub

_FINISHED_LINE = (
    '01-02 03:45:01.100  1000  1001 I BugreportProgressService: '
    'Bugreport finished\n'
)
_OTHER_LINE = '01-02 03:45:02.200  1000  1001 D ActivityManager: Idle\n'
_VERBOSE_LINE = (
    '01-02 03:45:03.300  1000  1001 V BugreportProgressService: '
    'Bugreport finished again\n'
)


class LogcatPubSubTest(unittest.TestCase):

  def setUp(self):
    super(LogcatPubSubTest, self).setUp()
    self.publisher = logcat_pubsub.LogcatPublisher('/tmp/unused_logcat.txt')

  def test_parse_line(self):
    data = logcat_pubsub.parse_line(_FINISHED_LINE)

    self.assertEqual(data.pid, 1000)
    self.assertEqual(data.tid, 1001)
    self.assertEqual(data.level, 'I')
    self.assertEqual(data.tag, 'BugreportProgressService')
    self.assertEqual(data.message, 'Bugreport finished')
    self.assertEqual(data.line, _FINISHED_LINE)

  def test_parse_line_not_logcat(self):
    self.assertIsNone(logcat_pubsub.parse_line('--------- beginning of main'))

  def test_publisher_is_not_active_before_start(self):
    self.assertFalse(self.publisher.is_active)

  def test_subscribe_non_subscriber(self):
    with self.assertRaises(TypeError):
      self.publisher.subscribe(object())

  def test_unsubscribe_unknown_subscriber(self):
    with self.assertRaises(logcat_pubsub.LogcatError):
      self.publisher.unsubscribe(logcat_pubsub.LogcatSubscriber())

  def test_event_triggers_on_matching_line(self):
    with self.publisher.event(
        pattern=r'Bugreport (?P<state>\w+)', tag='Bugreport*') as event:
      self.publisher.publish(logcat_pubsub.parse_line(_OTHER_LINE))
      self.assertFalse(event.is_set())

      self.publisher.publish(logcat_pubsub.parse_line(_FINISHED_LINE))

      self.assertTrue(event.wait(0.1))
      self.assertEqual(event.match['state'], 'finished')
      self.assertEqual(event.trigger.tag, 'BugreportProgressService')
      self.assertEqual(
          event.wait_outcome(0),
          completion_waiter.Success('Bugreport finished'))

  def test_event_keeps_first_trigger(self):
    with self.publisher.event(pattern='Bugreport.*', level='*') as event:
      self.publisher.publish(logcat_pubsub.parse_line(_FINISHED_LINE))
      self.publisher.publish(logcat_pubsub.parse_line(_VERBOSE_LINE))

      self.assertEqual(event.trigger.message, 'Bugreport finished')
      self.assertEqual(
          event.wait_outcome(0),
          completion_waiter.Success('Bugreport finished'))

  def test_event_filters_level(self):
    with self.publisher.event(pattern='Bugreport.*', level='I') as event:
      self.publisher.publish(logcat_pubsub.parse_line(_VERBOSE_LINE))

      self.assertFalse(event.wait(0.05))
      self.assertIs(event.wait_outcome(0), completion_waiter.TIMED_OUT)

  def test_event_clear_rearms(self):
    with self.publisher.event(pattern='Bugreport.*', level='*') as event:
      self.publisher.publish(logcat_pubsub.parse_line(_FINISHED_LINE))
      event.clear()

      self.assertFalse(event.is_set())
      self.assertIsNone(event.trigger)

      self.publisher.publish(logcat_pubsub.parse_line(_VERBOSE_LINE))
      self.assertEqual(
          event.wait_outcome(0),
          completion_waiter.Success('Bugreport finished again'))

  def test_event_signaled_from_publisher_thread(self):
    with self.publisher.event(pattern='Bugreport finished') as event:
      publisher_thread = threading.Timer(
          0.05, self.publisher.publish,
          args=(logcat_pubsub.parse_line(_FINISHED_LINE),))
      publisher_thread.start()

      self.assertTrue(event.wait(5))
      publisher_thread.join()

  def test_event_unsubscribes_on_exit(self):
    with self.publisher.event() as event:
      pass

    with self.assertRaises(logcat_pubsub.LogcatError):
      self.publisher.unsubscribe(event)


if __name__ == '__main__':
  unittest.main()
