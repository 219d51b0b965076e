"""
Multi-page, multi-locale static site builder driving webpack.

Pipeline stages live in sibling modules:
  config        — defaults, project overrides, path resolution
  locales       — locale discovery and message catalogs
  bundle_config — the webpack configuration description
  jsconfig      — rendering that description as a JS module
  bundler       — running webpack (one-shot and watch mode)
  dev_server    — static server with a browser reload channel
  tasks         — clean / build / dev / lint
  cli           — argument parsing and dispatch
"""

__version__ = "0.1.0"

NAME = "mpa-builder"
