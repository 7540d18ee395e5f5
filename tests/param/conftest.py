# Mrs Index
# Copyright 2008-2012 Brigham Young University
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

import types

import pytest

from mrsindex import param


class ParseFailed(Exception):
    """Raised by the test parser instead of printing and exiting."""


def parse_error(self, msg):
    raise ParseFailed(msg)


@pytest.fixture
def parser():
    parser = param.OptionParser()
    parser.error = types.MethodType(parse_error, parser)
    return parser

# vim: et sw=4 sts=4
