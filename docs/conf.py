"""Sphinx configuration for histoboard docs."""

project = "histoboard"
copyright = "2026, histoboard contributors"
author = "histoboard contributors"
release = "0.1.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "myst_parser",
    "nbsphinx",
]

templates_path = ["_templates"]
exclude_patterns = ["_build", "Thumbs.db", ".DS_Store"]

html_theme = "sphinx_rtd_theme"
html_static_path = ["_static"]

# autodoc
autodoc_member_order = "bysource"
autodoc_mock_imports = ["ipywidgets", "IPython"]

# MyST settings
myst_enable_extensions = ["colon_fence"]

# nbsphinx settings
nbsphinx_execute = "never"
