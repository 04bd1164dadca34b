"""Run storage, threshold verdicts and HTML reports."""
