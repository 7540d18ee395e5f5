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

import logging
import threading

import pytest

from mrsindex import channel
from mrsindex.channel import (ANY_SOURCE, MASTER_RANK, ProtocolError, Tag,
        make_channels)
from mrsindex.master import Bounds


def test_ranks():
    master, workers = make_channels(3)
    assert master.rank == MASTER_RANK
    assert master.peers == [1, 2, 3]
    assert [w.rank for w in workers] == [1, 2, 3]
    assert all(w.peers == [MASTER_RANK] for w in workers)

def test_no_workers():
    with pytest.raises(ValueError):
        make_channels(0)

def test_point_to_point():
    master, workers = make_channels(2)
    master.send(2, Tag.WORK, 'file.txt')
    message = workers[1].recv(MASTER_RANK)
    assert message == (MASTER_RANK, Tag.WORK, 'file.txt')

    workers[1].send(MASTER_RANK, Tag.SLEEP, Bounds('a', 'm'))
    message = master.recv(2)
    assert message.source == 2
    assert message.tag is Tag.SLEEP
    assert message.payload == Bounds('a', 'm')
    assert message.payload.lo == 'a'

def test_any_source_keeps_sender_order():
    master, workers = make_channels(2)
    for payload in ['a', 'b', 'c']:
        workers[0].send(MASTER_RANK, Tag.WORK, payload)
    for payload in ['x', 'y']:
        workers[1].send(MASTER_RANK, Tag.WORK, payload)

    messages = [master.recv(ANY_SOURCE) for i in range(5)]
    from1 = [m.payload for m in messages if m.source == 1]
    from2 = [m.payload for m in messages if m.source == 2]
    assert from1 == ['a', 'b', 'c']
    assert from2 == ['x', 'y']

def test_any_source_alternates_between_ready_peers():
    master, workers = make_channels(2)
    for payload in ['a', 'b', 'c']:
        workers[0].send(MASTER_RANK, Tag.WORK, payload)
    workers[1].send(MASTER_RANK, Tag.WORK, 'x')

    sources = [master.recv(ANY_SOURCE).source for i in range(4)]
    assert sources == [1, 2, 1, 1]

def test_any_source_blocks_until_a_message_arrives():
    master, workers = make_channels(3)

    def send_later():
        workers[2].send(MASTER_RANK, Tag.WORK, 'late')
    timer = threading.Timer(0.1, send_later)
    timer.start()

    message = master.recv(ANY_SOURCE)
    timer.join()
    assert message.source == 3
    assert message.payload == 'late'

def test_unexpected_tag():
    master, workers = make_channels(1)
    master.send(1, Tag.SLEEP, channel.NO_FILE)
    with pytest.raises(ProtocolError) as excinfo:
        workers[0].recv(MASTER_RANK, Tag.WORK)
    e = excinfo.value
    assert e.rank == 1
    assert e.expected is Tag.WORK
    assert e.message.payload == channel.NO_FILE
    assert 'expected WORK but got SLEEP' in str(e)

def test_closed_peer():
    master, workers = make_channels(1)
    workers[0].close()
    with pytest.raises(EOFError):
        master.recv(ANY_SOURCE)

def test_connect_one_worker_at_a_time():
    master = channel.Communicator(MASTER_RANK, {})
    first = channel.connect(master, 1)
    first.send(MASTER_RANK, Tag.WORK, 'one')
    second = channel.connect(master, 2)
    second.send(MASTER_RANK, Tag.WORK, 'two')

    assert master.peers == [1, 2]
    assert master.recv(1).payload == 'one'
    assert master.recv(ANY_SOURCE).payload == 'two'
    with pytest.raises(ValueError):
        channel.connect(master, 2)

def test_trace_goes_to_given_logger(caplog):
    caplog.set_level(logging.DEBUG, logger='trace')
    master, workers = make_channels(1, logging.getLogger('trace'))
    assert workers[0].logger is master.logger

    master.send(1, Tag.WORK, 'file.txt')
    workers[0].recv(MASTER_RANK)
    traced = [r.getMessage() for r in caplog.records if r.name == 'trace']
    assert traced == ["0 -> 1: WORK 'file.txt'", "1 <- 0: WORK 'file.txt'"]

# vim: et sw=4 sts=4
