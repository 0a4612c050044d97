"""HTTP API for the baby sleep tracker."""
