"""Tests for the parameter store."""

import logging
import threading
import unittest

import numpy as np

from paramstore.exceptions import (
    ConfigurationError,
    ParameterServerNotConfiguredError,
    PartialMaterializationError,
    UnknownDeviceError,
)
from paramstore.ndarray import Device, NDManager
from paramstore.nn import Parameter
from paramstore.training import DeviceRegistry, ParameterServer, ParameterStore
from paramstore.utils.config import StoreConfig
from paramstore.utils.logging import get_logger


class RecordingParameterServer(ParameterServer):
    """Parameter server that records every call."""

    def __init__(self, fail_on_init: int = -1):
        self.inits = []
        self.pushes = []
        self.pulls = []
        self.fail_on_init = fail_on_init
        self._lock = threading.Lock()

    def init(self, parameter_id, arrays):
        with self._lock:
            if len(self.inits) == self.fail_on_init:
                raise RuntimeError("backend unavailable")
            self.inits.append((parameter_id, list(arrays)))

    def push(self, parameter_id, gradients, priority=0):
        self.pushes.append((parameter_id, list(gradients), priority))

    def pull(self, parameter_id, weights, priority=0):
        self.pulls.append((parameter_id, list(weights), priority))
        for weight in weights:
            weight.set(np.full(weight.shape, 7.0))


def make_parameter(manager, name="w", requires_gradient=True, shape=(2, 3)):
    parameter = Parameter(name, requires_gradient=requires_gradient, init_strategy="ones")
    parameter.initialize(manager, shape)
    return parameter


class TestDeviceRegistry(unittest.TestCase):
    """Tests for the device registry."""

    def test_single_device(self):
        """Test single device."""
        registry = DeviceRegistry()
        registry.register_single_device(Device.cpu())

        self.assertEqual(registry.slot_of(Device.cpu()), 0)
        self.assertEqual(len(registry), 1)

    def test_configure_assigns_positions(self):
        """Test configure assigns positions."""
        registry = DeviceRegistry()
        registry.configure([Device.gpu(1), Device.gpu(0), Device.cpu()])

        self.assertEqual(registry.slot_of(Device.gpu(1)), 0)
        self.assertEqual(registry.slot_of(Device.gpu(0)), 1)
        self.assertEqual(registry.slot_of(Device.cpu()), 2)
        self.assertEqual(registry.devices(), [Device.gpu(1), Device.gpu(0), Device.cpu()])

    def test_unknown_device(self):
        """Test unknown device."""
        registry = DeviceRegistry()
        registry.register_single_device(Device.cpu())

        with self.assertRaises(UnknownDeviceError):
            registry.slot_of(Device.gpu(0))

    def test_invalid_configuration_keeps_previous(self):
        """Test invalid configuration keeps previous."""
        registry = DeviceRegistry()
        registry.configure([Device.gpu(0), Device.gpu(1)])

        with self.assertRaises(ConfigurationError):
            registry.configure([Device.gpu(0), Device.gpu(0)])
        with self.assertRaises(ConfigurationError):
            registry.configure([])

        self.assertEqual(registry.devices(), [Device.gpu(0), Device.gpu(1)])


class TestLocalMode(unittest.TestCase):
    """Tests for get_value without a parameter server."""

    def setUp(self):
        self.manager = NDManager(Device.cpu())

    def tearDown(self):
        self.manager.close()

    def test_reuses_canonical_array_without_copy(self):
        """Test reuses canonical array without copy."""
        parameter = make_parameter(self.manager)
        store = ParameterStore(self.manager, copy=False)

        value = store.get_value(parameter, Device.cpu())

        self.assertIs(value, parameter.array)
        self.assertIs(store.get_value(parameter, Device.cpu()), value)

    def test_copy_flag_makes_distinct_replica(self):
        """Test copy flag makes distinct replica."""
        parameter = make_parameter(self.manager)
        store = ParameterStore(self.manager, copy=True)

        value = store.get_value(parameter, Device.cpu())

        self.assertIsNot(value, parameter.array)
        self.assertEqual(value.device, Device.cpu())
        self.assertTrue(value.has_gradient())
        np.testing.assert_array_equal(value.to_numpy(), parameter.array.to_numpy())

    def test_transfers_when_home_device_differs(self):
        """Test transfers when home device differs."""
        gpu_manager = NDManager(Device.gpu(0))
        parameter = make_parameter(gpu_manager)
        store = ParameterStore(self.manager)

        value = store.get_value(parameter, Device.cpu())

        self.assertIsNot(value, parameter.array)
        self.assertEqual(value.device, Device.cpu())
        self.assertIs(value.manager, self.manager)
        gpu_manager.close()

    def test_other_device_is_rejected(self):
        """Test other device is rejected."""
        parameter = make_parameter(self.manager)
        store = ParameterStore(self.manager)

        with self.assertRaises(UnknownDeviceError):
            store.get_value(parameter, Device.gpu(0))
        self.assertNotIn(parameter.id, store)

    def test_update_requires_parameter_server(self):
        """Test update requires parameter server."""
        store = ParameterStore(self.manager)
        store.get_value(make_parameter(self.manager), Device.cpu())

        with self.assertRaises(ParameterServerNotConfiguredError):
            store.update_all_parameters()


class TestDistributedMode(unittest.TestCase):
    """Tests for get_value and update_all_parameters with a parameter server."""

    def setUp(self):
        self.manager = NDManager(Device.cpu())
        self.devices = [Device.gpu(0), Device.gpu(1)]
        self.server = RecordingParameterServer()
        self.store = ParameterStore(self.manager)
        self.store.set_parameter_server(self.server, self.devices)

    def tearDown(self):
        self.manager.close()

    def test_first_touch_on_second_device(self):
        """Test canonical array lands in the caller's slot, a tracked copy elsewhere."""
        a_manager = NDManager(Device.gpu(0))
        parameter = make_parameter(a_manager)

        value = self.store.get_value(parameter, Device.gpu(1))

        self.assertIs(value, parameter.array)
        self.assertEqual(len(self.server.inits), 2)
        for parameter_id, arrays in self.server.inits:
            self.assertEqual(parameter_id, parameter.id)
            self.assertEqual(len(arrays), 2)
            self.assertIs(arrays[1], parameter.array)
            self.assertIsNot(arrays[0], parameter.array)
            self.assertEqual(arrays[0].device, Device.gpu(0))
            self.assertTrue(arrays[0].has_gradient())
        self.assertIs(self.server.inits[0][1][0], self.server.inits[1][1][0])
        a_manager.close()

    def test_replicas_indexed_by_slot(self):
        """Test replicas indexed by slot."""
        parameter = make_parameter(self.manager)

        first = self.store.get_value(parameter, Device.gpu(0))
        second = self.store.get_value(parameter, Device.gpu(1))

        self.assertIs(first, parameter.array)
        self.assertEqual(second.device, Device.gpu(1))
        self.assertEqual(self.store.get_replicas(parameter.id), [first, second])
        self.assertEqual(len(self.server.inits), 2)

    def test_unknown_device(self):
        """Test unknown device."""
        with self.assertRaises(UnknownDeviceError):
            self.store.get_value(make_parameter(self.manager), Device.cpu())

    def test_concurrent_first_touch_places_once(self):
        """Test concurrent first touch places only once."""
        devices = [Device.gpu(i) for i in range(8)]
        server = RecordingParameterServer()
        store = ParameterStore(self.manager)
        store.set_parameter_server(server, devices)
        parameter = make_parameter(self.manager)

        barrier = threading.Barrier(len(devices))
        results = {}

        def worker(device):
            barrier.wait()
            results[device] = store.get_value(parameter, device)

        threads = [threading.Thread(target=worker, args=(d,)) for d in devices]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(server.inits), len(devices))
        replicas = store.get_replicas(parameter.id)
        self.assertEqual(len(replicas), len(devices))
        canonical = [d for d in devices if results[d] is parameter.array]
        self.assertEqual(len(canonical), 1)
        for slot, device in enumerate(devices):
            self.assertIs(results[device], replicas[slot])
            if device not in canonical:
                self.assertEqual(results[device].device, device)
                self.assertTrue(results[device].has_gradient())

    def test_requires_gradient_captured_at_first_touch(self):
        """Test requires gradient captured at first touch."""
        frozen = make_parameter(self.manager, "frozen", requires_gradient=False)
        self.store.get_value(frozen, Device.gpu(0))
        frozen.requires_gradient = True

        self.store.update_all_parameters()

        self.assertEqual(self.server.pushes, [])
        self.assertEqual(self.server.pulls, [])

    def test_priorities(self):
        """Test push and pull priorities."""
        params = [make_parameter(self.manager, f"p{i}") for i in range(3)]
        frozen = make_parameter(self.manager, "frozen", requires_gradient=False)
        self.store.get_value(params[0], Device.gpu(0))
        self.store.get_value(frozen, Device.gpu(0))
        self.store.get_value(params[1], Device.gpu(1))
        self.store.get_value(params[2], Device.gpu(0))

        self.store.update_all_parameters()

        expected_ids = [p.id for p in params]
        self.assertEqual([p[0] for p in self.server.pushes], expected_ids)
        self.assertEqual([p[2] for p in self.server.pushes], [0, -1, -2])
        self.assertEqual([p[0] for p in self.server.pulls], expected_ids)
        self.assertEqual([p[2] for p in self.server.pulls], [0, -1, -2])

    def test_push_gradients_and_pull_in_place(self):
        """Test push gradients and pull in place."""
        parameter = make_parameter(self.manager)
        self.store.get_value(parameter, Device.gpu(0))
        replicas = self.store.get_replicas(parameter.id)

        self.store.update_all_parameters()

        _, gradients, _ = self.server.pushes[0]
        self.assertEqual(len(gradients), 2)
        for replica, gradient in zip(replicas, gradients):
            self.assertIs(gradient, replica.gradient)

        _, weights, _ = self.server.pulls[0]
        for replica, weight in zip(replicas, weights):
            self.assertIs(weight, replica)
            np.testing.assert_array_equal(replica.to_numpy(), np.full((2, 3), 7.0))

    def test_reconfiguration_clears_entries(self):
        """Test reconfiguration clears entries."""
        parameter = make_parameter(self.manager)
        self.store.get_value(parameter, Device.gpu(0))
        self.assertEqual(len(self.store), 1)

        self.store.set_parameter_server(self.server, [Device.gpu(0), Device.gpu(1), Device.gpu(2)])

        self.assertEqual(len(self.store), 0)
        self.store.get_value(parameter, Device.gpu(2))
        self.assertEqual(len(self.store.get_replicas(parameter.id)), 3)

    def test_missing_parameter_server_rejected(self):
        """Test missing parameter server rejected."""
        with self.assertRaises(ConfigurationError):
            self.store.set_parameter_server(None, self.devices)

    def test_init_failure_leaves_entry_unusable(self):
        """Test init failure leaves entry unusable."""
        server = RecordingParameterServer(fail_on_init=1)
        store = ParameterStore(self.manager)
        store.set_parameter_server(server, self.devices)
        parameter = make_parameter(self.manager)

        with self.assertRaises(RuntimeError):
            store.get_value(parameter, Device.gpu(0))
        self.assertEqual(len(store.get_replicas(parameter.id)), 1)

        with self.assertRaises(PartialMaterializationError):
            store.get_value(parameter, Device.gpu(1))

        store.reset(parameter.id)
        server.fail_on_init = -1
        value = store.get_value(parameter, Device.gpu(0))
        self.assertIs(value, parameter.array)
        self.assertTrue(store.is_materialized(parameter.id))

    def test_failed_entry_blocks_update(self):
        """Test no gradients are pushed while a failed entry remains."""
        good = make_parameter(self.manager, "good")
        bad = Parameter("bad")
        self.store.get_value(good, Device.gpu(0))

        with self.assertRaises(RuntimeError):
            self.store.get_value(bad, Device.gpu(0))
        with self.assertRaises(PartialMaterializationError):
            self.store.update_all_parameters()
        self.assertEqual(self.server.pushes, [])
        self.assertEqual(self.server.pulls, [])

        self.store.reset(bad.id)
        self.store.update_all_parameters()
        self.assertEqual([p[0] for p in self.server.pushes], [good.id])
        self.assertEqual([p[0] for p in self.server.pulls], [good.id])


class TestStoreFromConfig(unittest.TestCase):
    """Tests for building a store from StoreConfig."""

    def test_distributed_from_config(self):
        """Test distributed from config."""
        manager = NDManager(Device.cpu())
        config = StoreConfig(devices=["gpu:0", "gpu:1"], log_level="WARNING")
        server = RecordingParameterServer()

        store = ParameterStore.from_config(manager, config, server)

        self.assertIs(store.parameter_server, server)
        self.assertEqual(store.devices, [Device.gpu(0), Device.gpu(1)])
        manager.close()

    def test_local_from_config(self):
        """Test local from config."""
        manager = NDManager(Device.cpu())
        store = ParameterStore.from_config(manager, StoreConfig(copy=True, log_level="WARNING"))

        self.assertTrue(store.copy)
        self.assertIsNone(store.parameter_server)
        self.assertEqual(store.devices, [Device.cpu()])
        manager.close()

    def test_from_config_leaves_logger_level_alone(self):
        """Test building a store does not change shared logger levels."""
        logger = get_logger("parameter_store")
        logger.set_level(logging.INFO)
        manager = NDManager(Device.cpu())

        ParameterStore.from_config(manager, StoreConfig(log_level="ERROR"))

        self.assertTrue(logger.is_enabled_for(logging.INFO))
        manager.close()


if __name__ == "__main__":
    unittest.main()
