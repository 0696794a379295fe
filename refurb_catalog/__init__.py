"""Refurb Catalog: inventory spreadsheets to refurbished Apple product listings."""
