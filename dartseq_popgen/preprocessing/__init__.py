"""Loading, renaming and quality filtering of DArT genotype data."""
