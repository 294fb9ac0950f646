"""Pytest configuration for website_deploy tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports
_PROJECT_ROOT = Path(__file__).parent.parent
_SRC = _PROJECT_ROOT / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest


@pytest.fixture
def project_root(tmp_path):
    """Create a temporary site project with a built ``dist/`` directory."""
    project = tmp_path / 'site'
    dist = project / 'dist'
    (dist / 'assets').mkdir(parents=True)
    (dist / 'index.html').write_text('<html>hello</html>')
    (dist / 'assets' / 'app.js').write_text('console.log("hi")')
    return project
