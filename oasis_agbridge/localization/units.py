################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Speed unit conversions."""

# Kilometers per hour in one meter per second
KPH_PER_MPS: float = 3.6


def kph_to_mps(speed_kph: float) -> float:
    return speed_kph / KPH_PER_MPS
