# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation
"""gerritcmd - a Gerrit-over-SSH workflow wrapper for git."""

__version__ = "0.1.0"
