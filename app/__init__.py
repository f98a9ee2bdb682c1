"""HTTP layer of the expense tracker."""
