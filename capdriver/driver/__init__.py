"""Driver core: mode resolution, capture dispatch and pipeline phases."""
