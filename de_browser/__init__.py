"""
Top-level package for the DE results browser.

Annotates and visualises pre-computed RNA-seq differential expression
results. Most code should import from submodules such as:
    de_browser.core
    de_browser.annotation
    de_browser.export
    de_browser.views
    de_browser.ui
"""

__version__ = "0.1.0"

__all__: list[str] = ["__version__"]
