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

"""ADB logcat publisher and event subscribers.

The publisher tails the logcat file that Mobly writes for a device and
publishes every parsed line to its subscribers from a background thread. An
event subscriber records the first line matching its filter into a
`CompletionWaiter`, so test code can block on a device-side event with a
deadline, e.g. a broadcast being delivered after a bugreport completes.
"""

import collections
import datetime
import fnmatch
import logging
import re
import subprocess
import sys
import threading
from typing import Optional, Union

from dateutil.parser import parse as parse_date

from cts_root.mobly.platforms.android.lib import completion_waiter


_LOGCAT_LINE_REGEX = re.compile(
    r'(?P<time>\d\d-\d\d \d\d:\d\d:\d\d.\d\d\d)\s+'
    r'(?P<pid>\d+)\s+(?P<tid>\d+)\s+(?P<level>[VDIWEFS])\s+'
    r'(?P<tag>.+?)\s*:\s+(?P<message>.*)')


LogcatData = collections.namedtuple(
    'LogcatData', ['time', 'pid', 'tid', 'level', 'tag', 'message',
                   'host_time', 'line'])


class LogcatError(Exception):
  """Logcat publisher or subscriber error."""


def parse_line(line: str) -> Optional[LogcatData]:
  """Parses one threadtime logcat line, None if it does not match."""
  match = _LOGCAT_LINE_REGEX.match(line)
  if match is None:
    return None
  return LogcatData(
      time=parse_date(match.group('time')),
      pid=int(match.group('pid')),
      tid=int(match.group('tid')),
      level=match.group('level'),
      tag=match.group('tag'),
      message=match.group('message').strip(),
      host_time=datetime.datetime.now(),
      line=line)


class LogcatPublisher(object):
  """Publishes lines appended to an ADB logcat file.

  In the example logcat line:

    01-02 03:45:01.100  1000  1001 I BugreportManager: Bugreport finished.

  The published `LogcatData` object will contain `time` (parsed datetime),
  `pid` and `tid` (ints), `level` (`I`), `tag` (`BugreportManager`),
  `message` (`Bugreport finished.`), `host_time` and the raw `line`.

  Args:
    logcat_file_path: local path of ADB logcat file.
  """

  def __init__(self, logcat_file_path):
    super(LogcatPublisher, self).__init__()
    self._logcat_file_path = logcat_file_path
    self._thread = None
    self._process = None
    self._subscribers = []
    self._lock = threading.Lock()

  def start(self):
    """Start the publisher process and task.

    Raises:
        LogcatError: If process is already running.
    """
    if self.is_active:
      raise LogcatError('Publisher process is already running.')

    if sys.platform == 'win32':
      cmd = [
          'powershell',
          'Get-Content',
          '-Wait',
          f'-Path "{self._logcat_file_path}"',
      ]
    else:
      cmd = ['tail', '-F', '-n', '0', self._logcat_file_path]
    self._process = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        encoding='utf-8',
        errors='ignore')
    self._thread = threading.Thread(target=self._task)
    self._thread.daemon = True
    self._thread.start()

  def stop(self):
    """Stop the publisher process and task."""
    if self.is_active:
      self._process.terminate()
      self._process.wait()
      self._thread.join()

  def event(self, pattern='.*', tag='*', level='V'):
    """Context manager object for a logcat event.

    Args:
      pattern: str, Regular expression pattern to trigger on.
      tag: str, Tag portion of filterspec string.
      level: str, Level portion of filterspec string.

    Returns:
      A subscribed `LogcatEventSubscriber`, unsubscribed on exit.
    """
    return LogcatEventSubscriber(self, pattern=pattern, tag=tag, level=level)

  @property
  def is_active(self):
    """Publisher is running."""
    return bool(self._process and self._process.returncode is None
                and self._thread and self._thread.is_alive())

  def subscribe(self, subscriber):
    """Subscribe a handler to this publisher.

    Args:
      subscriber: LogcatSubscriber, a logcat subscriber to subscribe.

    Raises:
      TypeError: When subscriber is not a LogcatSubscriber.
    """
    if not isinstance(subscriber, LogcatSubscriber):
      raise TypeError('Attempted to subscribe a non-subscriber.')
    with self._lock:
      self._subscribers.append(subscriber)

  def unsubscribe(self, subscriber):
    """Unsubscribe a subscriber to this publisher.

    Args:
      subscriber: LogcatSubscriber, a logcat subscriber to unsubscribe.

    Raises:
      LogcatError: When the argument is not previously registered
        subscriber.
    """
    with self._lock:
      if subscriber not in self._subscribers:
        raise LogcatError('Attempted to unsubscribe a non-subscriber.')
      self._subscribers.remove(subscriber)

  def publish(self, data):
    """Delivers one parsed line to every current subscriber."""
    with self._lock:
      subscribers = list(self._subscribers)
    for subscriber in subscribers:
      subscriber.handle(data)

  def _task(self):
    """Main publisher thread task."""
    if self._process is None:
      raise ValueError('Process not running.')
    for line in iter(self._process.stdout.readline, ''):
      if self._process.returncode is not None:
        break
      pub_data = parse_line(line)
      if pub_data is None:
        continue
      self.publish(pub_data)


class LogcatSubscriber(object):
  """Base class for logcat subscriber."""

  def __init__(self):
    super(LogcatSubscriber, self).__init__()
    self._publisher = None

  def subscribe(self, publisher):
    """Subscribe this object to a publisher.

    Args:
      publisher: LogcatPublisher, a logcat publisher to subscribe to.

    Raises:
      TypeError: If publisher is not a LogcatPublisher.
    """
    if not isinstance(publisher, LogcatPublisher):
      raise TypeError('"publisher" is not a LogcatPublisher.')
    publisher.subscribe(self)
    self._publisher = publisher

  def unsubscribe(self):
    """Unsubscribe this object to its publisher."""
    if self._publisher:
      self._publisher.unsubscribe(self)
    self._publisher = None

  def handle(self, data):
    """Abstract subscribe handler method.

    Args:
      data: LogcatData, Data to handle.

    Raises:
      NotImplementedError: If subclass method is not implemented.
    """
    raise NotImplementedError('"handle" is a required subscriber method.')


class LogcatEventSubscriber(LogcatSubscriber):
  """Waits for the first logcat line matching a filter.

  The matching line is kept in `trigger` and its message is signaled as
  `Success(message)` on the subscriber's waiter. Lines after the first match
  are ignored until `clear` re-arms the subscriber.

  Args:
    publisher: LogcatPublisher, Logcat publisher to subscribe to.
    pattern: str, Regular expression pattern to trigger on.
    tag: str, Tag portion of filterspec string.
    level: str, Level portion of filterspec string.
  """
  _LOG_LEVELS = 'VDIWEF'

  def __init__(self, publisher, pattern='.*', tag='*', level='V'):
    super(LogcatEventSubscriber, self).__init__()
    self._waiter = completion_waiter.CompletionWaiter.create()
    self._pattern = (re.compile(pattern) if isinstance(pattern, str)
                     else pattern)
    self._tag = tag
    self._levels = (self._LOG_LEVELS if level == '*'
                    else self._LOG_LEVELS[self._LOG_LEVELS.find(level):])
    self._lock = threading.Lock()
    self.trigger = None
    self.match = None
    self.subscribe(publisher)

  def __enter__(self):
    return self

  def __exit__(self, exc_type, exc_value, traceback):
    self.unsubscribe()

  def clear(self):
    """Clears the recorded event and arms a new waiter."""
    with self._lock:
      self.trigger = None
      self.match = None
      self._waiter = completion_waiter.CompletionWaiter.create()

  def wait(
      self,
      timeout: Union[float, datetime.timedelta],
  ) -> bool:
    """Wait until the trigger expression is seen.

    Args:
      timeout: float in seconds or timedelta, timeout for the operation.

    Returns:
      True unless the operation times out.
    """
    return completion_waiter.is_terminal(self.wait_outcome(timeout))

  def wait_outcome(
      self,
      timeout: Union[float, datetime.timedelta],
  ) -> completion_waiter.WaitResult:
    """Same as `wait`, returning the waiter outcome instead of a bool."""
    with self._lock:
      waiter = self._waiter
    return waiter.wait(timeout)

  def is_set(self) -> bool:
    """Returns True if the trigger expression has been seen, False otherwise."""
    with self._lock:
      return self._waiter.is_set()

  def handle(self, data):
    """Handle a logcat subscription message.

    Args:
      data: LogcatData, Data to handle.
    """
    if data.tag is None or not fnmatch.fnmatchcase(data.tag, self._tag):
      return
    if data.level is None or data.level not in self._levels:
      return
    with self._lock:
      if self.trigger is not None:
        return
      match = self._pattern.match(data.message)
      if not match:
        return
      self.match = match
      self.trigger = data
      waiter = self._waiter
    logging.debug('Logcat event triggered: %s', data.line.rstrip())
    waiter.signal_success(data.message)
