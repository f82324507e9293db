"""Pytest configuration and shared fixtures."""

import pytest
import torch as t

from pathtracer.config import device


@pytest.fixture
def generator():
    """Seeded random stream so sampled tests are reproducible."""
    gen = t.Generator(device=device)
    gen.manual_seed(1234)
    return gen


@pytest.fixture
def another_generator():
    gen = t.Generator(device=device)
    gen.manual_seed(4321)
    return gen
