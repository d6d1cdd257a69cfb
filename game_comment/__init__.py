"""Comment and rating backend for embeddable web games."""
