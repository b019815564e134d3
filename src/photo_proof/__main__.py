# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Entry point for ``python -m photo_proof``."""

from .main import main

if __name__ == "__main__":
    main()
