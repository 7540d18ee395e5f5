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

"""Ordered key -> (value, count) container

The same container is used in two shapes.  During the map stage a worker
keys it by document and counts the words of that document:

    path -> [(word, count), ...]

During the reduce stage it is keyed by word and remembers the count of the
word in each document:

    word -> [(path, count), ...]

Both the entries and the values within an entry keep the order in which
they were first seen.  Nothing is ever sorted.
"""

from logging import getLogger
default_logger = getLogger('mrsindex')


class Entry(object):
    """A key together with its ordered (value, count) pairs.

    Attributes:
        key: the entry's key (a word or a document path)
        counts: map from a value to its count, in first-seen order
    """
    __slots__ = ('key', 'counts')

    def __init__(self, key, value, count=1):
        self.key = key
        self.counts = {value: count}

    def items(self):
        """Return a list of (value, count) pairs in first-seen order."""
        return list(self.counts.items())

    def count(self, value):
        """Return the count of the given value (0 if it is absent)."""
        return self.counts.get(value, 0)

    def __len__(self):
        return len(self.counts)

    def __repr__(self):
        return 'Entry(%r, %r)' % (self.key, self.items())


class Dictionary(object):
    """Growable associative container with count accumulation.

    Insertions report success with a boolean rather than raising: a failed
    insert is logged and the caller is expected to carry on with the rest of
    its input.

    Attributes:
        _entries: map from a key to its Entry, in first-seen order
        logger: where allocation failures are reported
    """
    def __init__(self, logger=None):
        self._entries = {}
        self.logger = logger or default_logger

    def insert_value(self, key, value):
        """Add one occurrence of value under key.

        A new key gets an entry holding (value, 1), a new value is appended
        to the key's entry with a count of 1, and a known value has its
        count incremented.  Returns True on success.
        """
        try:
            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = Entry(key, value)
            else:
                counts = entry.counts
                counts[value] = counts.get(value, 0) + 1
        except MemoryError:
            self.logger.error('Out of memory while inserting %r into %r.'
                    % (value, key))
            return False
        return True

    def insert_value_with_count(self, key, value, count):
        """Record that value occurs count times under key.

        Unlike insert_value, this is idempotent: if the (key, value) pair is
        already present, the call changes nothing and the count from the
        first insertion is kept.  Returns True on success.
        """
        if count < 1:
            raise ValueError('Count must be positive, got %r' % count)
        try:
            entry = self._entries.get(key)
            if entry is None:
                self._entries[key] = Entry(key, value, count)
            elif value not in entry.counts:
                entry.counts[value] = count
        except MemoryError:
            self.logger.error('Out of memory while inserting %r into %r.'
                    % (value, key))
            return False
        return True

    def release(self):
        """Drop every entry."""
        for entry in self._entries.values():
            entry.counts.clear()
        self._entries.clear()

    def get(self, key, default=None):
        return self._entries.get(key, default)

    def keys(self):
        return list(self._entries)

    def __iter__(self):
        return iter(list(self._entries.values()))

    def __len__(self):
        return len(self._entries)

    def __bool__(self):
        return bool(self._entries)

    def __contains__(self, key):
        return key in self._entries

    def __getitem__(self, key):
        return self._entries[key]

# vim: et sw=4 sts=4
