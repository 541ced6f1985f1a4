"""Test configuration and fixtures for the federation bridge."""

from tests.fixtures import *  # noqa: F401,F403
