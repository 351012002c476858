"""Data wrangling: dplyr-style verbs and the derived views built from them."""
