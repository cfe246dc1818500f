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

"""Constants shared by the CTS root test suite."""

SUITE_NAME = 'CTS Root Host Tests'
VERSION = '1.0.0'

# Keys of optional `TestParams` in the Mobly testbed config.
PARAM_BUGREPORT_TIMEOUT_SEC = 'bugreport_timeout_sec'
PARAM_TEST_APP_A_APK = 'test_app_a_apk'
PARAM_TEST_APP_B_APK = 'test_app_b_apk'

# Packages installed by the package installer tests.
TEST_APP_A_PACKAGE = 'com.android.cts.install.lib.testapp.A'
TEST_APP_B_PACKAGE = 'com.android.cts.install.lib.testapp.B'
TEST_APP_C_PACKAGE = 'com.android.cts.install.lib.testapp.C'
TEST_APP_PACKAGES = (TEST_APP_A_PACKAGE, TEST_APP_B_PACKAGE, TEST_APP_C_PACKAGE)

DEFAULT_TEST_APP_A_APK = 'cts_root/assets/TestAppAv1.apk'
DEFAULT_TEST_APP_B_APK = 'cts_root/assets/TestAppBv1.apk'
