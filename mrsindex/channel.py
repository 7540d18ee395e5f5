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

"""Point-to-point messages between the master and the workers

Every endpoint has a rank: the master is rank 0 and the workers are ranks 1
through N.  Each (master, worker) pair is joined by its own pipe, so messages
between a pair arrive in the order they were sent.  The master can also
receive from ANY_SOURCE, which waits on all of its pipes at once; there is no
ordering between different senders.

Pipes from the multiprocessing module work the same way between threads and
between processes, which lets the same endpoints serve both launch modes.
"""

import collections
import enum
import multiprocessing
from multiprocessing import connection

from logging import getLogger
default_logger = getLogger('mrsindex')

MASTER_RANK = 0
ANY_SOURCE = -1

# Sent instead of a file path when there is no more map work.
NO_FILE = '${NOTAFILE}'


class Tag(enum.IntEnum):
    """Message kinds.

    WORK carries data to act on (a file path, reduce bounds, a file name).
    SLEEP ends the receiver's current phase; its payload is informational.
    """
    WORK = 0
    SLEEP = 1


Message = collections.namedtuple('Message', 'source tag payload')


class ProtocolError(Exception):
    """A message arrived that the current phase does not expect."""
    def __init__(self, rank, message, expected):
        self.rank = rank
        self.message = message
        self.expected = expected

    def __str__(self):
        return ('Endpoint %s expected %s but got %s from %s (payload %r)'
                % (self.rank, self.expected.name, self.message.tag.name,
                    self.message.source, self.message.payload))


class Communicator(object):
    """One endpoint and its pipes to each of its peers.

    Sends never wait for the matching receive: a message is queued in the
    pipe and recv blocks until one is available.

    Attributes:
        rank: this endpoint's rank
        _conns: map from a peer's rank to the connection leading to it
        _rotation: peer ranks in the order they are preferred by an
            ANY_SOURCE receive (the last peer served goes to the back)
        logger: where every message sent and received is traced at DEBUG
    """
    def __init__(self, rank, conns, logger=None):
        self.rank = rank
        self._conns = dict(conns)
        self._rotation = collections.deque(sorted(self._conns))
        self.logger = logger or default_logger

    def add_peer(self, rank, conn):
        if rank in self._conns:
            raise ValueError('Peer %s is already connected' % rank)
        self._conns[rank] = conn
        self._rotation.append(rank)

    @property
    def peers(self):
        return sorted(self._conns)

    def send(self, dest, tag, payload):
        self.logger.debug('%s -> %s: %s %r' % (self.rank, dest, Tag(tag).name,
            payload))
        self._conns[dest].send((int(tag), payload))

    def recv(self, source=ANY_SOURCE, tag=None):
        """Block until a message arrives and return it.

        If tag is given, any other tag raises ProtocolError.  A peer that has
        gone away raises EOFError.
        """
        if source == ANY_SOURCE:
            source = self._wait_any()
        raw_tag, payload = self._conns[source].recv()
        message = Message(source, Tag(raw_tag), payload)
        self.logger.debug('%s <- %s: %s %r' % (self.rank, source,
            message.tag.name, payload))
        if tag is not None and message.tag != tag:
            raise ProtocolError(self.rank, message, Tag(tag))
        return message

    def _wait_any(self):
        """Return the rank of a peer with a message ready to be read."""
        by_conn = dict((conn, rank) for rank, conn in self._conns.items())
        ready = set(by_conn[conn] for conn in connection.wait(list(by_conn)))
        for rank in self._rotation:
            if rank in ready:
                self._rotation.remove(rank)
                self._rotation.append(rank)
                return rank
        raise RuntimeError('wait returned no known connection')

    def close(self):
        for conn in self._conns.values():
            conn.close()


def connect(master, rank):
    """Join a new worker endpoint of the given rank to the master endpoint.

    Each call creates a fresh pipe, so a launcher can create a worker's pipe
    right before starting it.  Returns the worker's Communicator.
    """
    master_end, worker_end = multiprocessing.Pipe()
    master.add_peer(rank, master_end)
    return Communicator(rank, {MASTER_RANK: worker_end}, master.logger)


def make_channels(num_workers, logger=None):
    """Create the master's endpoint and one endpoint per worker.

    Returns a (master, workers) pair, where workers is a list ordered by rank
    (its first element is rank 1).
    """
    if num_workers < 1:
        raise ValueError('At least one worker is required')
    master = Communicator(MASTER_RANK, {}, logger)
    workers = [connect(master, rank) for rank in range(1, num_workers + 1)]
    return master, workers

# vim: et sw=4 sts=4
