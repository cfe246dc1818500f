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

"""Utils for package installer sessions."""

from __future__ import annotations

from collections.abc import Iterator
import contextlib
import re

from mobly import asserts
from mobly.controllers import android_device

from cts_root.utils import android_utils
from cts_root.utils import constants

_STAGED_SESSIONS_DIR = '/data/app-staging'
_STAGED_SESSION_PATTERN = r'session_\d+'
_NON_STAGED_SESSIONS_DIR = '/data/app'
_NON_STAGED_SESSION_PATTERN = r'vmdl\d+\.tmp'

_ABANDON_STAGED_SESSIONS_CMD = (
    'for i in $(pm list staged-sessions --only-sessionid --only-parent); '
    'do pm install-abandon $i; done'
)
_SESSION_CREATED_REGEX = re.compile(r'\[(?P<session_id>\d+)\]')


def get_staging_directories_for_staged_sessions(
    ad: android_device.AndroidDevice) -> list[str]:
  return android_utils.list_directory(
      ad, _STAGED_SESSIONS_DIR, _STAGED_SESSION_PATTERN
  )


def get_staging_directories_for_non_staged_sessions(
    ad: android_device.AndroidDevice) -> list[str]:
  return android_utils.list_directory(
      ad, _NON_STAGED_SESSIONS_DIR, _NON_STAGED_SESSION_PATTERN
  )


@contextlib.contextmanager
def staging_directories_unchanged(
    ad: android_device.AndroidDevice) -> Iterator[None]:
  """Asserts the body leaves no session staging directory behind."""
  staged_before = get_staging_directories_for_staged_sessions(ad)
  non_staged_before = get_staging_directories_for_non_staged_sessions(ad)
  yield
  asserts.assert_equal(
      get_staging_directories_for_staged_sessions(ad),
      staged_before,
      'Staged session directories were not cleaned up.',
  )
  asserts.assert_equal(
      get_staging_directories_for_non_staged_sessions(ad),
      non_staged_before,
      'Non-staged session directories were not cleaned up.',
  )


def create_session(ad: android_device.AndroidDevice) -> int:
  """Creates an empty install session and returns its ID."""
  output = android_utils.run_shell_command(ad, ['pm', 'install-create'])
  matched = _SESSION_CREATED_REGEX.search(output)
  asserts.assert_true(
      matched is not None, f'Failed to create install session: {output}'
  )
  return int(matched['session_id'])


def abandon_session(ad: android_device.AndroidDevice, session_id: int) -> None:
  ad.adb.shell(['pm', 'install-abandon', str(session_id)])


def abandon_staged_sessions(ad: android_device.AndroidDevice) -> None:
  ad.adb.shell(_ABANDON_STAGED_SESSIONS_CMD)


def uninstall_test_apps(ad: android_device.AndroidDevice) -> None:
  for package_name in constants.TEST_APP_PACKAGES:
    android_utils.uninstall_package(ad, package_name)
