#!/usr/bin/env python3
#
# Copyright 2022 Max Planck Insitute Magdeburg
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
#
#
#
"""Static strings used in the extresolver package

    Algebra bases

        MILNOR = 'milnor'

        ADEM = 'adem'

        BASES = (MILNOR, ADEM)

    Resolution setup

        SAVE_DIR = 'save_dir'

        THREADS = 'threads'

        MAX_S = 'max_s'

        MAX_T = 'max_t'

        COMPRESS = 'compress'

        WRITE_RETRIES = 'write_retries'

    Module specification (json keys)

        MODULE_TYPE = 'type'

        FD_MODULE = 'finite dimensional module'

        PRIME = 'p'

        NAME = 'name'

        GENS = 'gens'

        ACTIONS = 'actions'

        ALGEBRA = 'algebra'
"""

# Algebra bases
MILNOR = 'milnor'
ADEM = 'adem'
BASES = (MILNOR, ADEM)

# Resolution setup
SAVE_DIR = 'save_dir'
THREADS = 'threads'
MAX_S = 'max_s'
MAX_T = 'max_t'
COMPRESS = 'compress'
WRITE_RETRIES = 'write_retries'

# Module specification (json keys)
MODULE_TYPE = 'type'
FD_MODULE = 'finite dimensional module'
PRIME = 'p'
NAME = 'name'
GENS = 'gens'
ACTIONS = 'actions'
ALGEBRA = 'algebra'
