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

"""Mrs Index Worker

A worker goes through three stages, each started and ended by messages from
the master:

    map: count the words of each file the master assigns and append the
        counts to this worker's intermediate file
    reduce: read every worker's intermediate file and keep the words whose
        first letter falls in the assigned bounds
    store: append the resulting index slice to the shared result file

The worker never decides anything on its own.  It just does what the master
tells it to, in order, and then quits.
"""

import enum
import os

from . import dictionary
from . import fileformats
from . import util
from .channel import MASTER_RANK, ProtocolError, Tag

from logging import getLogger
default_logger = getLogger('mrsindex')


class Phase(enum.Enum):
    MAP = 'map'
    REDUCE = 'reduce'
    STORE = 'store'
    DONE = 'done'


class Worker(object):
    """Execute the map, reduce and store stages for one rank.

    Attributes:
        comm: the worker's Communicator (its only peer is the master)
        phase: the stage that the next call to run_once will execute
        index: the word -> document dictionary built during reduce
        intermediate_path: the file this worker appends to during map
    """
    def __init__(self, comm, output_dir, min_word_size=util.MIN_WORD_SIZE,
            logger=None):
        self.comm = comm
        self.rank = comm.rank
        self.output_dir = output_dir
        self.min_word_size = min_word_size
        self.logger = logger or default_logger

        self.phase = Phase.MAP
        self.index = dictionary.Dictionary(self.logger)
        self.intermediate_path = os.path.join(output_dir,
                fileformats.intermediate_name(self.rank))
        self.bounds = None

        self._stages = {
                Phase.MAP: self.map_stage,
                Phase.REDUCE: self.reduce_stage,
                Phase.STORE: self.store_stage,
                }

    def run(self):
        self.logger.info('Worker %s: starting.' % self.rank)
        while self.run_once():
            pass
        self.logger.info('Worker %s: all stages done.' % self.rank)

    def run_once(self):
        """Runs the current stage and moves on to the next one.

        Returns True if it should keep running.
        """
        self.phase = self._stages[self.phase]()
        return self.phase is not Phase.DONE

    def map_stage(self):
        message = self.comm.recv(MASTER_RANK)
        while message.tag == Tag.WORK:
            path = message.payload
            self.logger.info('Worker %s: received file %r to parse.'
                    % (self.rank, path))
            self.map_file(path)
            self.logger.info('Worker %s: finished parsing file %r.'
                    % (self.rank, path))

            # Tell the master that we're ready for more.
            self.comm.send(MASTER_RANK, Tag.WORK, path)
            message = self.comm.recv(MASTER_RANK)
        return Phase.REDUCE

    def map_file(self, path):
        """Count the words of one document and append its block.

        A document that cannot be read contributes nothing.
        """
        file_words = dictionary.Dictionary(self.logger)
        try:
            with fileformats.DocumentReader(fileformats.open_text(path),
                    self.min_word_size) as reader:
                for word in reader:
                    file_words.insert_value(path, word)
        except OSError as e:
            self.logger.error('Worker %s: failed to read file %r: %s'
                    % (self.rank, path, e))
            return

        try:
            with fileformats.open_text(self.intermediate_path, 'a') as f:
                with fileformats.IntermediateWriter(f) as writer:
                    writer.write_dictionary(file_words)
        except OSError as e:
            self.logger.error('Worker %s: failed to write file %r: %s'
                    % (self.rank, self.intermediate_path, e))
        finally:
            file_words.release()

    def reduce_stage(self):
        message = self.comm.recv(MASTER_RANK, Tag.WORK)
        self.bounds = message.payload
        lo, hi = self.bounds
        self.logger.info('Worker %s: received the bounds [%s, %s] for the'
                ' reduce stage.' % (self.rank, lo, hi))

        try:
            paths = [path for path in util.iter_regular_files(self.output_dir)
                    if fileformats.is_intermediate_name(path)]
        except OSError as e:
            self.logger.error('Worker %s: failed to list directory %r: %s'
                    % (self.rank, self.output_dir, e))
            paths = []

        for path in paths:
            self.reduce_file(path, lo, hi)

        self.logger.info('Worker %s: finished the reduce for the bounds'
                ' [%s, %s].' % (self.rank, lo, hi))
        self.comm.send(MASTER_RANK, Tag.SLEEP, self.bounds)
        return Phase.STORE

    def reduce_file(self, path, lo, hi):
        """Merge the words of one intermediate file that fall in [lo, hi]."""
        try:
            with fileformats.IntermediateReader(fileformats.open_text(path),
                    self.logger) as reader:
                for document, word, count in reader:
                    if not (lo <= word[0] <= hi):
                        continue
                    if not self.index.insert_value_with_count(word, document,
                            count):
                        self.logger.error('Worker %s: failed to insert %r'
                                ' into the index.' % (self.rank, word))
        except OSError as e:
            self.logger.error('Worker %s: failed to read file %r: %s'
                    % (self.rank, path, e))

    def store_stage(self):
        message = self.comm.recv(MASTER_RANK, Tag.WORK)
        path = os.path.join(self.output_dir, message.payload)
        self.logger.info('Worker %s: received the signal to store the result'
                ' into file %r.' % (self.rank, path))

        try:
            with fileformats.open_text(path, 'a') as f:
                with fileformats.IndexWriter(f) as writer:
                    writer.write_dictionary(self.index)
            self.logger.info('Worker %s: wrote %s words into file %r.'
                    % (self.rank, len(self.index), path))
        except OSError as e:
            self.logger.error('Worker %s: failed to write file %r: %s'
                    % (self.rank, path, e))

        self.comm.send(MASTER_RANK, Tag.WORK, path)
        # Wait to be dismissed.
        self.comm.recv(MASTER_RANK, Tag.SLEEP)
        self.index.release()
        return Phase.DONE


def worker_main(comm, output_dir, min_word_size, log_level, log_file=None):
    """Entry point of a worker process or thread.

    The worker's end of the pipe is closed on the way out, so the master
    notices if the worker stops early.
    """
    util.set_log_level(log_level, log_file)
    worker = Worker(comm, output_dir, min_word_size)
    try:
        worker.run()
    except ProtocolError as e:
        worker.logger.critical('Worker %s: %s' % (comm.rank, e))
    except (EOFError, BrokenPipeError):
        worker.logger.critical('Worker %s: lost the connection to the'
                ' master.' % comm.rank)
    except KeyboardInterrupt:
        pass
    finally:
        comm.close()

# vim: et sw=4 sts=4
