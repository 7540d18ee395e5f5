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

"""Mrs Index main method and implementations.

An Implementation decides how the workers are launched and specifies the
command-line options.  The master always runs in the calling process.
"""

import logging
import multiprocessing
import multiprocessing.util
import os
import sys
import threading
import time

from . import channel
from . import fileformats
from . import master
from . import param
from . import util
from . import worker
from .param import ParamObj, Param
from .version import __version__


USAGE = (""
"""%prog [OPTIONS] INPUT_DIR OUTPUT_DIR

Mrs Index Version """ + __version__ + """

Builds an inverted index of the words in the files of INPUT_DIR.  The
workers' intermediate files and the index itself (result.txt by default) are
written to OUTPUT_DIR.  One of the --procs processes is the master; the rest
are workers."""
)

# Seconds to wait for workers to exit after the master has failed.
FAILURE_JOIN_TIMEOUT = 5

logger = logging.getLogger('mrsindex')


def main(args=None):
    """Run Mrs Index and exit with its exit code.

    The optional `args`, if specified, is used instead of `sys.argv`.
    """
    sys.exit(run(args))


def run(args=None):
    """Run Mrs Index and return its exit code."""
    parser = option_parser()
    opts, args = parser.parse_args(args)
    if len(args) != 2:
        parser.error('Expected INPUT_DIR and OUTPUT_DIR, got %s arguments'
                % len(args))

    impl = param.instantiate(IMPLEMENTATIONS[opts.impl], opts)
    try:
        return impl.main(args[0], args[1])
    except KeyboardInterrupt:
        logger.critical('Quitting due to keyboard interrupt.')
        return 1


def option_parser():
    """Create the default Mrs Index parser."""
    parser = param.OptionParser(usage=USAGE, version=__version__)
    parser.add_option('-I', '--impl', dest='impl', type='choice',
            choices=sorted(IMPLEMENTATIONS), default='processes',
            help='How workers are launched: %s (default=processes)'
            % ', '.join(sorted(IMPLEMENTATIONS)))
    parser.add_param_object(BaseImplementation)
    return parser


class BaseImplementation(ParamObj):
    """The base implementation.

    Subclasses say how a worker is started and stopped.
    """

    _params = dict(
        procs=Param(default=multiprocessing.cpu_count() + 1, type='int',
            shortopt='-p',
            doc='Total number of processes, including the master'),
        min_word_size=Param(default=util.MIN_WORD_SIZE, type='int',
            doc='Words shorter than this are not indexed'),
        result_name=Param(default=fileformats.RESULT_NAME,
            doc='Name of the result file in the output directory'),
        verbose=Param(type='bool', doc='Verbose mode (set log level to INFO)'),
        debug=Param(type='bool', doc='Debug mode (set log level to DEBUG)'),
        log_file=Param(doc='Also append log messages to this file'),
        timing_file=Param(doc='Name of a file to write timing data to'),
        )

    def main(self, input_dir, output_dir):
        start_time = time.time()

        if self.debug:
            level = logging.DEBUG
        elif self.verbose:
            level = logging.INFO
        else:
            level = logging.WARNING
        util.set_log_level(level, self.log_file)

        try:
            return self._main(input_dir, output_dir)
        finally:
            if self.timing_file:
                with open(self.timing_file, 'w') as timing_file:
                    total_time = time.time() - start_time
                    print('total_time=%s' % total_time, file=timing_file)

    def _main(self, input_dir, output_dir):
        num_workers = self.procs - 1
        if num_workers < 1:
            logger.critical('At least 2 processes (a master and a worker)'
                    ' are required, got %s.' % self.procs)
            return 1
        if self.min_word_size < 1:
            logger.critical('The minimum word size must be positive.')
            return 1
        if os.path.exists(output_dir) and util.same_directory(input_dir,
                output_dir):
            logger.critical('The input and output directories must differ.')
            return 1

        try:
            self.prepare_output_dir(output_dir)
        except OSError as e:
            logger.critical('Cannot prepare output directory %r: %s'
                    % (output_dir, e))
            return 1

        master_comm = channel.Communicator(channel.MASTER_RANK, {})
        exitcode = 1
        handles = []
        try:
            handles = self.start_workers(master_comm, num_workers, output_dir)
            coordinator = master.Master(master_comm, input_dir,
                    self.result_name)
            exitcode = coordinator.run()
        finally:
            # Workers still waiting on the master see EOF and quit.
            master_comm.close()
            self.stop_workers(handles, exitcode == 0)
        return exitcode

    def prepare_output_dir(self, output_dir):
        """Create the output directory and clear out a previous run."""
        util.try_makedirs(output_dir)
        for path in util.iter_regular_files(output_dir):
            name = os.path.basename(path)
            if (fileformats.is_intermediate_name(name)
                    or name == self.result_name):
                logger.info('Removing %r from a previous run.' % path)
                util.try_remove(path)

    def worker_args(self, comm, output_dir):
        return (comm, output_dir, self.min_word_size,
                logger.getEffectiveLevel(), self.log_file)

    def start_workers(self, master_comm, num_workers, output_dir):
        """Connect and start workers 1 through num_workers.

        Each pipe is created right before its worker starts, so a worker
        never inherits the end of another worker's pipe.
        """
        handles = []
        for rank in range(1, num_workers + 1):
            comm = channel.connect(master_comm, rank)
            handles.append(self.start_worker(comm, output_dir))
        return handles

    def start_worker(self, comm, output_dir):
        """Start a worker and return a handle for stop_workers."""
        raise NotImplementedError('Implementation must be extended.')

    def stop_workers(self, handles, success):
        raise NotImplementedError('Implementation must be extended.')


class Processes(BaseImplementation):
    """Runs each worker in its own process."""

    def start_workers(self, master_comm, num_workers, output_dir):
        # A forked worker holds copies of the master's ends of the pipes
        # created so far.  It closes them, or the master closing its own ends
        # would never reach the workers as EOF.
        multiprocessing.util.register_after_fork(master_comm,
                channel.Communicator.close)
        return super(Processes, self).start_workers(master_comm, num_workers,
                output_dir)

    def start_worker(self, comm, output_dir):
        proc = multiprocessing.Process(target=worker.worker_main,
                name='Worker %s' % comm.rank,
                args=self.worker_args(comm, output_dir))
        proc.start()
        # The child has its own copy of the worker's end of the pipe.
        comm.close()
        return proc

    def stop_workers(self, handles, success):
        for proc in handles:
            if success:
                proc.join()
            else:
                proc.join(FAILURE_JOIN_TIMEOUT)
                if proc.is_alive():
                    logger.warning('Terminating %s.' % proc.name)
                    proc.terminate()
                    proc.join()


class Threads(BaseImplementation):
    """Runs each worker in a thread of the master's process.

    This is mostly useful for debugging.
    """

    def start_worker(self, comm, output_dir):
        thread = threading.Thread(target=worker.worker_main,
                name='Worker %s' % comm.rank,
                args=self.worker_args(comm, output_dir))
        thread.daemon = True
        thread.start()
        return thread

    def stop_workers(self, handles, success):
        for thread in handles:
            if success:
                thread.join()
            else:
                thread.join(FAILURE_JOIN_TIMEOUT)


IMPLEMENTATIONS = {
        'processes': Processes,
        'threads': Threads,
        }

# vim: et sw=4 sts=4
