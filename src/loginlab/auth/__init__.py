# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2)
- Credential input validation
- The credential store gateways (unsafe and safe)
- Server-side sessions behind a signed cookie (itsdangerous)
"""
