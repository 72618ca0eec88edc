"""Personal research-paper review tracker."""
