"""Command-line front-end for the student finance tracker."""
