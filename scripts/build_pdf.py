#!/usr/bin/env python3
"""
PDF Build CLI

Thin wrapper so the CLI can be run from a checkout without installing.

Examples:\n

    build_pdf.py build paper.tex out/paper.pdf

    build_pdf.py build paper.tex out/paper.pdf --passes 2 -d refs.bib
"""

from latexmk_runner.cli import app

if __name__ == "__main__":
    app()
