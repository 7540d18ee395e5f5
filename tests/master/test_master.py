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

"""Drive a real Master against scripted workers running in threads."""

import random
import threading
import time

import pytest

from mrsindex.channel import MASTER_RANK, NO_FILE, Tag, make_channels
from mrsindex.master import Bounds, Master, MasterPhase, partition_bounds


class FakeWorker(object):
    """Follows the worker side of the protocol without touching files.

    Attributes:
        files: paths received during the map phase, in order
        bounds: the bounds received in the reduce phase
        events: (rank, what) pairs appended to a list shared by all workers
    """
    def __init__(self, comm, events, max_delay=0.0):
        self.comm = comm
        self.events = events
        self.max_delay = max_delay
        self.files = []
        self.bounds = None
        self.map_sentinel = None

    def pause(self):
        if self.max_delay:
            time.sleep(random.uniform(0, self.max_delay))

    def run(self):
        rank = self.comm.rank
        message = self.comm.recv(MASTER_RANK)
        while message.tag == Tag.WORK:
            self.files.append(message.payload)
            self.pause()
            self.comm.send(MASTER_RANK, Tag.WORK, message.payload)
            message = self.comm.recv(MASTER_RANK)
        self.map_sentinel = message.payload

        message = self.comm.recv(MASTER_RANK, Tag.WORK)
        self.bounds = message.payload
        self.pause()
        self.comm.send(MASTER_RANK, Tag.SLEEP, self.bounds)

        message = self.comm.recv(MASTER_RANK, Tag.WORK)
        self.events.append((rank, 'store start'))
        self.pause()
        self.events.append((rank, 'store end'))
        self.comm.send(MASTER_RANK, Tag.WORK, '/out/%s' % message.payload)
        self.comm.recv(MASTER_RANK, Tag.SLEEP)


def start_fake_workers(worker_comms, max_delay=0.0):
    events = []
    fakes = [FakeWorker(comm, events, max_delay) for comm in worker_comms]
    threads = []
    for fake in fakes:
        t = threading.Thread(target=fake.run)
        t.daemon = True
        t.start()
        threads.append(t)
    return fakes, threads, events

def make_inputs(tmpdir, count):
    indir = tmpdir.mkdir('in')
    for i in range(count):
        indir.join('doc%s.txt' % i).write('word %s\n' % i)
    # Subdirectories are not input files.
    indir.mkdir('subdir')
    return indir


@pytest.mark.parametrize('num_workers,num_files', [(1, 0), (1, 5), (3, 2),
    (3, 10), (4, 25)])
def test_every_file_mapped_once(tmpdir, num_workers, num_files):
    indir = make_inputs(tmpdir, num_files)
    master_comm, worker_comms = make_channels(num_workers)
    fakes, threads, events = start_fake_workers(worker_comms, 0.01)

    master = Master(master_comm, indir.strpath)
    assert master.run() == 0
    for t in threads:
        t.join()

    assert master.phase is MasterPhase.DONE
    assert master.pending == 0
    assert master.completed == num_files

    mapped = [path for fake in fakes for path in fake.files]
    assert len(mapped) == num_files
    assert sorted(mapped) == sorted(indir.join('doc%s.txt' % i).strpath
            for i in range(num_files))
    assert all(fake.map_sentinel == NO_FILE for fake in fakes)

def test_reduce_bounds_follow_rank(tmpdir):
    indir = make_inputs(tmpdir, 3)
    master_comm, worker_comms = make_channels(4)
    fakes, threads, events = start_fake_workers(worker_comms)

    master = Master(master_comm, indir.strpath)
    assert master.run() == 0
    for t in threads:
        t.join()

    expected = partition_bounds(4)
    assert [fake.bounds for fake in fakes] == expected
    assert master.bounds == dict(zip([1, 2, 3, 4], expected))

def test_store_is_one_worker_at_a_time(tmpdir):
    indir = make_inputs(tmpdir, 6)
    master_comm, worker_comms = make_channels(3)
    fakes, threads, events = start_fake_workers(worker_comms, 0.01)

    master = Master(master_comm, indir.strpath, result_name='index.txt')
    assert master.run() == 0
    for t in threads:
        t.join()

    assert events == [(1, 'store start'), (1, 'store end'),
            (2, 'store start'), (2, 'store end'),
            (3, 'store start'), (3, 'store end')]
    assert master.stored_paths == {1: '/out/index.txt', 2: '/out/index.txt',
            3: '/out/index.txt'}

def test_phases_advance_in_order(tmpdir):
    indir = make_inputs(tmpdir, 2)
    master_comm, worker_comms = make_channels(2)
    fakes, threads, events = start_fake_workers(worker_comms)

    master = Master(master_comm, indir.strpath)
    phases = [master.phase]
    while master.run_once():
        phases.append(master.phase)
    phases.append(master.phase)
    for t in threads:
        t.join()

    assert phases == [MasterPhase.MAP_DISTRIBUTE, MasterPhase.REDUCE_ASSIGN,
            MasterPhase.STORE_COLLECT, MasterPhase.DONE]

def test_missing_input_directory(tmpdir, caplog):
    master_comm, worker_comms = make_channels(2)
    fakes, threads, events = start_fake_workers(worker_comms)

    master = Master(master_comm, tmpdir.join('nowhere').strpath)
    assert master.run() == 0
    for t in threads:
        t.join()

    assert master.completed == 0
    assert all(fake.files == [] for fake in fakes)
    assert all(fake.map_sentinel == NO_FILE for fake in fakes)
    assert 'failed to read directory' in caplog.text

def test_wrong_tag_from_worker(tmpdir, caplog):
    indir = make_inputs(tmpdir, 1)
    master_comm, worker_comms = make_channels(1)

    # Reply to the file with SLEEP instead of WORK.
    worker_comms[0].send(MASTER_RANK, Tag.SLEEP, 'oops')

    master = Master(master_comm, indir.strpath)
    assert master.run() == 1
    assert master.phase is MasterPhase.MAP_DISTRIBUTE
    assert 'expected WORK but got SLEEP' in caplog.text

def test_worker_goes_away(tmpdir, caplog):
    indir = make_inputs(tmpdir, 1)
    master_comm, worker_comms = make_channels(1)
    worker_comms[0].close()

    master = Master(master_comm, indir.strpath)
    assert master.run() == 1
    assert 'lost the connection' in caplog.text

# vim: et sw=4 sts=4
