import django
import pytest
from lxml import etree

from xmlscope import conf
from xmlscope.parsers import clear_schema_cache


def pytest_configure():
    print(f"Running with Django {django.__version__}, lxml {etree.__version__}")
    print(f"Using XMLSCOPE_ERROR_POLICY={conf.XMLSCOPE_ERROR_POLICY}")


@pytest.fixture(autouse=True)
def empty_schema_cache():
    """Each test starts without compiled schemas."""
    clear_schema_cache()
    yield
    clear_schema_cache()
