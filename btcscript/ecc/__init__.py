#!/usr/bin/env python3

# Copyright (C) 2020-2022 The btcscript developers
#
# This file is part of btcscript. It is subject to the license terms in the
# LICENSE file found in the top-level directory of this distribution.
#
# No part of btcscript including this file, may be copied, modified, propagated,
# or distributed except according to the terms contained in the LICENSE file.

"""Module btcscript.ecc."""
