# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication building blocks.

This package provides:
- Password hashing/verification and input policy (argon2)
- The credential store over the users table (SQLAlchemy)
- Server-side sessions referenced by signed cookies (itsdangerous)
"""
