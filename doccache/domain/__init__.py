"""Domain layer for doccache."""
