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

"""The base test class for CTS root tests."""

import logging

from mobly import base_test
from mobly import records
from mobly import utils
from mobly.controllers import android_device

from cts_root.utils import constants


def _take_bug_reports(
    ads: list[android_device.AndroidDevice],
    destination: str,
):
  utils.concurrent_exec(
      lambda ad: ad.take_bug_report(destination=destination),
      [[ad] for ad in ads],
      raise_on_exception=False,
  )


class CtsRootBaseTest(base_test.BaseTestClass):
  """A Mobly base test for CTS root tests."""

  ad: android_device.AndroidDevice

  def setup_class(self):
    suite_name = f'{constants.SUITE_NAME}: {constants.VERSION}'
    self.record_data({
        'properties': {
            'suite_name': f'[{suite_name}]',
        }
    })

  def on_fail(self, record: records.TestResultRecord) -> None:
    super().on_fail(record)
    if hasattr(self, 'ad'):
      logging.info('Capturing bugreport from android, this may take a while...')
      _take_bug_reports([self.ad], self.current_test_info.output_path)
