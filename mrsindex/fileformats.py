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

"""Readers and writers for the files a job touches

There are three kinds of files:

    documents: the input text files, read word by word
    intermediate files: one per worker, written during the map stage and
        read by every worker during the reduce stage
    the result file: the inverted index, appended to by each worker in turn

An intermediate file is a sequence of blocks, one per document:

    <document path>
    <word>:<count>
    ...
    <blank line>

A line of the result file lists the documents containing a word:

    <word>: <doc1: count1><doc2: count2>...
"""

import os
import re

from . import util

from logging import getLogger
default_logger = getLogger('mrsindex')

ENCODING = 'utf-8'
INTERMEDIATE_PREFIX = 'map'
INTERMEDIATE_EXT = '.txt'
RESULT_NAME = 'result.txt'

_intermediate_re = re.compile(r'^%s\d+%s$' % (re.escape(INTERMEDIATE_PREFIX),
    re.escape(INTERMEDIATE_EXT)))


def intermediate_name(rank):
    """Name of the intermediate file owned by the worker of the given rank."""
    return '%s%d%s' % (INTERMEDIATE_PREFIX, rank, INTERMEDIATE_EXT)


def is_intermediate_name(name):
    return bool(_intermediate_re.match(os.path.basename(name)))


def open_text(path, mode='r'):
    """Open a text file the way all readers and writers expect.

    Undecodable bytes are replaced with u'\\ufffd' rather than raising.
    """
    return open(path, mode, encoding=ENCODING, errors='replace', newline='\n')


class Writer(object):
    """A writer takes a text file object and writes records to it.

    Writers do not flush or close the file object.  This class is abstract.
    """
    def __init__(self, fileobj):
        self.fileobj = fileobj

    def finish(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.finish()


class Reader(object):
    """A reader takes a text file object and iterates over records.

    A Reader closes the file object if the close method is called or if it
    is used as a context manager.  This class is abstract.
    """
    def __init__(self, fileobj):
        self.fileobj = fileobj

    def __iter__(self):
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, type, value, traceback):
        self.close()

    def close(self):
        self.fileobj.close()


class DocumentReader(Reader):
    """Iterates over the lower-cased words of a document.

    Words shorter than min_size are left out.
    """
    def __init__(self, fileobj, min_size=util.MIN_WORD_SIZE):
        super(DocumentReader, self).__init__(fileobj)
        self.min_size = min_size

    def __iter__(self):
        for line in self.fileobj:
            for word in util.split_words(line, self.min_size):
                yield word


class IntermediateWriter(Writer):
    """Writes one block per document to an intermediate file."""

    def write_block(self, path, pairs):
        write = self.fileobj.write
        write(path)
        write('\n')
        for word, count in pairs:
            write('%s:%d\n' % (word, count))
        write('\n')

    def write_dictionary(self, dictionary):
        """Write a block for each entry of a path -> word dictionary."""
        for entry in dictionary:
            self.write_block(entry.key, entry.items())


class IntermediateReader(Reader):
    """Iterates over (path, word, count) triples of an intermediate file.

    A line that is not a valid word:count pair is logged and skipped.
    """
    def __init__(self, fileobj, logger=None):
        super(IntermediateReader, self).__init__(fileobj)
        self.logger = logger or default_logger

    def __iter__(self):
        path = None
        for lineno, line in enumerate(self.fileobj, 1):
            line = line.rstrip('\n')
            if path is None:
                # Extra blank lines between blocks are harmless.
                if line:
                    path = line
                continue
            if not line:
                path = None
                continue

            word, sep, count = line.partition(':')
            try:
                count = int(count)
            except ValueError:
                count = 0
            if not (sep and word and count > 0):
                name = getattr(self.fileobj, 'name', '<intermediate>')
                self.logger.warning('Skipping malformed line %s of %s: %r'
                        % (lineno, name, line))
                continue
            yield path, word, count


class IndexWriter(Writer):
    """Writes the entries of a word -> document dictionary."""

    def write_entry(self, entry):
        documents = ''.join('<%s: %d>' % pair for pair in entry.items())
        self.fileobj.write('%s: %s\n' % (entry.key, documents))

    def write_dictionary(self, dictionary):
        for entry in dictionary:
            self.write_entry(entry)

# vim: et sw=4 sts=4
