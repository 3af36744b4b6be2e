"""Packaged register layouts."""
