"""Target generators: pure functions from a project to output files.

Quick usage::

    from pagesmith.generators import FrontendGenerator

    for path, content in FrontendGenerator().generate(project):
        print(path, len(content))
"""

from pagesmith.generators.backend import BackendGenerator
from pagesmith.generators.base import GeneratedFile, Generator
from pagesmith.generators.database import DatabaseGenerator
from pagesmith.generators.frontend import FrontendGenerator
from pagesmith.generators.templates import TemplateRenderer

__all__ = [
    "BackendGenerator",
    "DatabaseGenerator",
    "FrontendGenerator",
    "GeneratedFile",
    "Generator",
    "TemplateRenderer",
]
