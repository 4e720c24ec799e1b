"""
Test configuration for Kappa tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from context import TypeContext, ValueContext
from parsing import create_parser


@pytest.fixture(scope="session")
def parser():
  """One parser for the whole run; grammars are stateless between parses"""
  return create_parser()


@pytest.fixture
def type_context():
  return TypeContext.default()


@pytest.fixture
def value_context():
  return ValueContext.default()
