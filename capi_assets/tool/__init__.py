"""Command line tool for importing Cluster API providers."""
