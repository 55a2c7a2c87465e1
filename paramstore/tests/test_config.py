"""Tests for store configuration."""

import logging
import unittest

from paramstore.exceptions import ConfigurationError
from paramstore.utils.config import StoreConfig
from paramstore.utils.logging import configure_logging, get_logger


class TestStoreConfig(unittest.TestCase):
    """Tests for StoreConfig."""

    def test_default_config(self):
        """Test default configuration values."""
        config = StoreConfig()

        self.assertFalse(config.copy)
        self.assertEqual(config.devices, [])
        self.assertEqual(config.optimizer, "sgd")
        config.validate()

    def test_serialization(self):
        """Test dict and JSON conversion."""
        config = StoreConfig(copy=True, devices=["gpu:0", "gpu:1"], optimizer="adam")

        d = config.to_dict()
        self.assertEqual(d["devices"], ["gpu:0", "gpu:1"])

        config2 = StoreConfig.from_dict({**d, "unknown_key": 1})
        self.assertTrue(config2.copy)

        config3 = StoreConfig.from_json(config.to_json())
        self.assertEqual(config3.optimizer, "adam")
        self.assertEqual(config3.devices, ["gpu:0", "gpu:1"])

    def test_validation(self):
        """Test invalid values are rejected."""
        with self.assertRaises(ConfigurationError):
            StoreConfig(optimizer="ftrl").validate()

        with self.assertRaises(ConfigurationError):
            StoreConfig(devices=["gpu:0", "gpu:0"]).validate()

        with self.assertRaises(ValueError):
            StoreConfig(init_strategy="invalid").validate()

        with self.assertRaises(ConfigurationError):
            StoreConfig(log_level="LOUD").validate()

    def test_optimizer_config(self):
        """Test per-optimizer settings."""
        config = StoreConfig(optimizer="adam")

        adam_config = config.get_optimizer_config()

        self.assertIn("beta1", adam_config)
        self.assertEqual(config.get_optimizer_config("sgd")["learning_rate"], 0.01)
        self.assertEqual(config.get_log_level(), logging.INFO)


class TestLogger(unittest.TestCase):
    """Tests for the logger wrapper."""

    def test_singleton_per_name(self):
        """Test singleton per name."""
        self.assertIs(get_logger("test_component"), get_logger("test_component"))
        self.assertIsNot(get_logger("test_component"), get_logger("other_component"))

    def test_set_level(self):
        """Test changing the logging level."""
        logger = get_logger("level_component")
        logger.set_level(logging.DEBUG)

        self.assertTrue(logger.is_enabled_for(logging.DEBUG))
        logger.set_level(logging.WARNING)
        self.assertFalse(logger.is_enabled_for(logging.INFO))

    def test_configure_logging(self):
        """Test configure_logging updates every existing logger."""
        first = get_logger("configured_a")
        second = get_logger("configured_b")

        configure_logging(logging.ERROR)
        try:
            self.assertFalse(first.is_enabled_for(logging.WARNING))
            self.assertFalse(second.is_enabled_for(logging.WARNING))
            self.assertTrue(second.is_enabled_for(logging.ERROR))
        finally:
            configure_logging(logging.INFO)
        self.assertTrue(first.is_enabled_for(logging.INFO))


if __name__ == "__main__":
    unittest.main()
