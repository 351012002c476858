"""Visualization utilities.

This package contains the plotting steps of the walkthrough:

- scatter, box and box + jitter plots with labels and theme edits
- a stacked composition bar chart built from long-format averages
- faceted scatter plots with per-facet regression lines

Every plot function returns a matplotlib Figure; :mod:`pokestats.viz.export`
saves it to disk so they work in headless CI/CD environments.
"""
