# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""prevctl - Discover tunnel URLs of remote preview environments."""

__version__ = "0.1.0"
