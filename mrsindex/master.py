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

"""Mrs Index Master

The master drives every worker through the same three phases:

    MAP_DISTRIBUTE: hand out input files one at a time, giving each worker a
        new file as soon as it reports the previous one finished
    REDUCE_ASSIGN: give each worker a slice of the alphabet and wait until
        all of them have merged their slice
    STORE_COLLECT: let the workers append to the result file one after
        another, in rank order

The phases never overlap, so by the time a worker reads the intermediate
files in the reduce phase, every worker has finished writing them.
"""

import collections
import enum
import math
import string

from . import fileformats
from . import util
from .channel import ANY_SOURCE, NO_FILE, ProtocolError, Tag

from logging import getLogger
default_logger = getLogger('mrsindex')

ALPHABET = string.ascii_lowercase
DISMISSAL = 'You did well.  It is time to go home.'


Bounds = collections.namedtuple('Bounds', 'lo hi')


class MasterPhase(enum.Enum):
    MAP_DISTRIBUTE = 'map_distribute'
    REDUCE_ASSIGN = 'reduce_assign'
    STORE_COLLECT = 'store_collect'
    DONE = 'done'


def partition_bounds(num_workers, alphabet=ALPHABET):
    """Split the alphabet into one inclusive first-letter range per worker.

    Each range starts right after the previous one ends.  When the alphabet
    does not divide evenly, the last range runs past its final letter.

    >>> partition_bounds(4)
    [Bounds(lo='a', hi='g'), Bounds(lo='h', hi='n'), Bounds(lo='o', hi='u'), Bounds(lo='v', hi='|')]
    """
    if num_workers < 1:
        raise ValueError('At least one worker is required')
    step = int(math.ceil(len(alphabet) / num_workers))
    bounds = []
    hi = ord(alphabet[0]) - 1
    for i in range(num_workers):
        lo = hi + 1
        hi = lo + step - 1
        bounds.append(Bounds(chr(lo), chr(hi)))
    return bounds


class Master(object):
    """Coordinates the workers of a single job.

    Attributes:
        comm: the master's Communicator (rank 0)
        phase: the phase that the next call to run_once will execute
        pending: number of files handed out but not yet reported finished
        completed: number of map completion notices received
        bounds: the Bounds sent to each rank in the reduce phase
        stored_paths: the path each rank reported writing in the store phase
    """
    def __init__(self, comm, input_dir, result_name=fileformats.RESULT_NAME,
            logger=None):
        self.comm = comm
        self.workers = comm.peers
        self.input_dir = input_dir
        self.result_name = result_name
        self.logger = logger or default_logger

        self.phase = MasterPhase.MAP_DISTRIBUTE
        self.pending = 0
        self.completed = 0
        self.bounds = {}
        self.stored_paths = {}
        self._files = None

        self._phases = {
                MasterPhase.MAP_DISTRIBUTE: self.map_distribute,
                MasterPhase.REDUCE_ASSIGN: self.reduce_assign,
                MasterPhase.STORE_COLLECT: self.store_collect,
                }

    @property
    def num_workers(self):
        return len(self.workers)

    def run(self):
        """Run every phase.  Returns an exit code (0 for success)."""
        self.logger.info('Master: starting with %s workers.'
                % self.num_workers)
        try:
            while self.run_once():
                pass
        except ProtocolError as e:
            self.logger.critical('Master: %s' % e)
            return 1
        except (EOFError, BrokenPipeError):
            self.logger.critical('Master: lost the connection to a worker'
                    ' during the %s phase.' % self.phase.value)
            return 1
        self.logger.info('Master: all phases done.')
        return 0

    def run_once(self):
        """Runs the current phase and moves on to the next one.

        Returns True if it should keep running.
        """
        self.phase = self._phases[self.phase]()
        return self.phase is not MasterPhase.DONE

    def next_file(self):
        """Return the path of the next input file, or None if there are none.

        A directory that cannot be read counts as an empty one.
        """
        if self._files is None:
            self._files = util.iter_regular_files(self.input_dir)
        try:
            return next(self._files)
        except StopIteration:
            return None
        except OSError as e:
            self.logger.error('Master: failed to read directory %r: %s'
                    % (self.input_dir, e))
            self._files = iter(())
            return None

    def assign_file(self, rank):
        """Send the next file to a worker, or tell it that there are none."""
        path = self.next_file()
        if path is None:
            self.logger.info('Master: no more work to do; stopping the map'
                    ' phase of worker %s.' % rank)
            self.comm.send(rank, Tag.SLEEP, NO_FILE)
        else:
            self.logger.info('Master: sending file %r to worker %s.'
                    % (path, rank))
            self.comm.send(rank, Tag.WORK, path)
            self.pending += 1

    def map_distribute(self):
        for rank in self.workers:
            self.assign_file(rank)

        while self.pending > 0:
            message = self.comm.recv(ANY_SOURCE, Tag.WORK)
            self.pending -= 1
            self.completed += 1
            self.logger.info('Master: worker %s finished parsing file %r.'
                    % (message.source, message.payload))
            self.assign_file(message.source)

        self.logger.info('Master: the workers parsed all %s files from %r.'
                ' Map phase done.' % (self.completed, self.input_dir))
        return MasterPhase.REDUCE_ASSIGN

    def reduce_assign(self):
        for rank, bounds in zip(self.workers,
                partition_bounds(self.num_workers)):
            self.logger.info('Master: sending bounds [%s, %s] to worker %s.'
                    % (bounds.lo, bounds.hi, rank))
            self.bounds[rank] = bounds
            self.comm.send(rank, Tag.WORK, bounds)

        # Barrier: wait for every worker, in whatever order they finish.
        for i in range(self.num_workers):
            message = self.comm.recv(ANY_SOURCE, Tag.SLEEP)
            lo, hi = message.payload
            self.logger.info('Master: worker %s finished the reduce phase for'
                    ' bounds [%s, %s].' % (message.source, lo, hi))

        self.logger.info('Master: reduce phase done.')
        return MasterPhase.STORE_COLLECT

    def store_collect(self):
        # One worker at a time, so the result file never has two writers.
        for rank in self.workers:
            self.logger.info('Master: asking worker %s to write the result'
                    ' into %r.' % (rank, self.result_name))
            self.comm.send(rank, Tag.WORK, self.result_name)
            message = self.comm.recv(rank, Tag.WORK)
            self.stored_paths[rank] = message.payload
            self.logger.info('Master: worker %s wrote the result into %r.'
                    % (rank, message.payload))
            self.comm.send(rank, Tag.SLEEP, DISMISSAL)

        self.logger.info('Master: store phase done.')
        return MasterPhase.DONE

# vim: et sw=4 sts=4
