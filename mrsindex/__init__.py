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

"""Mrs Index: a distributed inverted word index

A master process hands the files of an input directory to a fixed pool of
workers.  Each worker counts the words of its files (map), merges one
alphabetic slice of everybody's counts (reduce), and finally appends its
slice of the index to a shared result file (store).

Running it from the command line looks like this:

    mrs-index --procs 5 --verbose input_dir/ output_dir/

or, from Python:

    import mrsindex
    mrsindex.main(['--procs', '5', 'input_dir/', 'output_dir/'])
"""

# Set up the default logging configuration.
import logging, sys
logger = logging.getLogger('mrsindex')
logger.setLevel(logging.WARNING)
handler = logging.StreamHandler(sys.stderr)
format = '%(asctime)s: %(levelname)s: %(message)s'
formatter = logging.Formatter(format)
handler.setFormatter(formatter)
logger.addHandler(handler)

from . import version
from .dictionary import Dictionary, Entry
from .main import main, run

__version__ = version.__version__

__all__ = ['Dictionary', 'Entry', 'main', 'run', 'logger']

# vim: et sw=4 sts=4
