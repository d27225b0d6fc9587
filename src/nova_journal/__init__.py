"""nova-journal: contextual embedding index and retrieval for journal notes."""
