# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Barangay relief core: donation schedules, family eligibility and claims.
"""

__version__ = "1.0.0"
