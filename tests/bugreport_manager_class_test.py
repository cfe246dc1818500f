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

import shutil
import tempfile
import unittest
from unittest import mock

from mobly import config_parser

from cts_root import bugreport_manager_test
from cts_root.utils import android_utils
from cts_root.utils import bugreport_utils


class BugreportManagerTestSetupTest(unittest.TestCase):

  def setUp(self):
    super(BugreportManagerTestSetupTest, self).setUp()
    self.tmp_dir = tempfile.mkdtemp()
    self.addCleanup(shutil.rmtree, self.tmp_dir)
    configs = config_parser.TestRunConfig()
    configs.log_path = self.tmp_dir
    configs.testbed_name = 'FakeTestbed'
    self.test_class = bugreport_manager_test.BugreportManagerTest(configs)
    self.test_class.ad = mock.MagicMock()

  def test_setup_test_waits_for_dumpstate_first(self):
    manager = mock.Mock()
    with mock.patch.object(
        bugreport_utils, 'wait_for_dumpstate_service_to_stop',
        manager.wait_for_dumpstate_service_to_stop), mock.patch.object(
            bugreport_utils, 'ensure_no_consent_dialog_shown',
            manager.ensure_no_consent_dialog_shown), mock.patch.object(
                android_utils, 'wake_and_unlock', manager.wake_and_unlock):
      self.test_class.setup_test()

    self.assertEqual(manager.mock_calls, [
        mock.call.wait_for_dumpstate_service_to_stop(self.test_class.ad),
        mock.call.ensure_no_consent_dialog_shown(self.test_class.ad),
        mock.call.wake_and_unlock(self.test_class.ad),
    ])


if __name__ == '__main__':
  unittest.main()
