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

import re

import pytest

import mrsindex

_document_re = re.compile(r'<(.*?): (\d+)>')


def pytest_generate_tests(metafunc):
    if 'impl' in metafunc.fixturenames:
        metafunc.parametrize('impl', ['threads', 'processes'])


def parse_result(path):
    """Read a result file into a dict of word -> [(document, count), ...].

    Fails if a word shows up on more than one line.
    """
    index = {}
    with open(path) as f:
        for line in f:
            word, sep, documents = line.rstrip('\n').partition(': ')
            assert sep, line
            assert word not in index, word
            index[word] = [(doc, int(count))
                    for doc, count in _document_re.findall(documents)]
    return index


@pytest.fixture
def run_index():
    """Return a function that runs Mrs Index and returns its exit code."""
    def run(impl, procs, indir, outdir, *extra):
        args = ['--impl', impl, '--procs', str(procs)] + list(extra)
        args += [str(indir), str(outdir)]
        return mrsindex.run(args)
    return run

# vim: et sw=4 sts=4
