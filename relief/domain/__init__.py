# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the barangay relief platform.

This package contains pure business logic functions with no side effects.
All domain functions are pure and testable without external dependencies.
"""
