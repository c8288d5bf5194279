# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""loginlab: signup/login/session demo.

Two interchangeable variants share the same routes and session handling:
- unsafe: SQL built by string interpolation, login without password check,
  raw username rendered into the members page
- safe: bound parameters, argon2 verification, escaped output
"""

__version__ = "0.1.0"
