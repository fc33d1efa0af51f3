"""Pagesmith: compile a visual project model to React, NestJS and SQL source.

Quick usage::

    from pagesmith.model import mutations
    from pagesmith.generators import FrontendGenerator

    project = mutations.create_project("My App")
    files = FrontendGenerator().generate(project)
"""

__version__ = "0.1.0"
