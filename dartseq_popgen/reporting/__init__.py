"""Tables, plots, reports and notifications produced by an analysis run."""
