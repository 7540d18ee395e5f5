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

"""Miscellaneous Helper Functions"""

import errno
import logging
import os
import re

from logging import getLogger
logger = getLogger('mrsindex')

MIN_WORD_SIZE = 3

# Characters that separate words, in addition to whitespace.  Note that the
# apostrophe is not a separator, so "don't" is a single word.
WORD_DELIMITERS = '\ufffd!?.,_-*&()[]{}|/:;~"1234567890'
_split_re = re.compile(r'[\s%s]+' % re.escape(WORD_DELIMITERS))


def split_words(text, min_size=MIN_WORD_SIZE):
    """Split text into lower-case words of at least min_size characters.

    >>> split_words('The cat, the HAT; 42 on a mat!')
    ['the', 'cat', 'the', 'hat', 'mat']
    """
    return [word.lower() for word in _split_re.split(text)
            if len(word) >= min_size]


def iter_regular_files(path):
    """Yield the paths of the regular files in a directory.

    Files are produced in directory order (not sorted), and subdirectories
    are skipped.  Since this is a generator, an OSError from opening the
    directory is raised by the first call to next().
    """
    with os.scandir(path) as it:
        for dirent in it:
            if dirent.is_file():
                yield os.path.join(path, dirent.name)


def try_makedirs(path):
    """Do the equivalent of mkdir -p."""
    try:
        os.makedirs(path)
    except OSError as e:
        if e.errno != errno.EEXIST:
            raise


def try_remove(path):
    """Remove a file, ignoring the case where it does not exist."""
    try:
        os.remove(path)
    except OSError as e:
        if e.errno != errno.ENOENT:
            raise


def same_directory(path1, path2):
    return os.path.realpath(path1) == os.path.realpath(path2)


def set_log_level(level, log_file=None):
    """Set the package log level and optionally mirror records to a file.

    Calling this more than once with the same log_file does not add a second
    handler for it.
    """
    logger.setLevel(level)
    if not log_file:
        return
    log_file = os.path.abspath(log_file)
    for h in logger.handlers:
        if getattr(h, 'baseFilename', None) == log_file:
            return
    handler = logging.FileHandler(log_file, mode='a')
    handler.setFormatter(logging.Formatter(
        '%(asctime)s: %(levelname)s: %(processName)s: %(message)s'))
    logger.addHandler(handler)

# vim: et sw=4 sts=4
