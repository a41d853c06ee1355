"""Tests for the feature encoder."""

import numpy as np
import pytest

from pattern_nexus.core.models import PatternRecord
from pattern_nexus.embeddings import ACTIONS, DIMENSION, FeatureEncoder, create_encoder


class TestFeatureEncoder:
    def setup_method(self):
        self.encoder = FeatureEncoder()

    def test_dimension(self, make_pattern):
        vec = self.encoder.encode(make_pattern())
        assert vec.shape == (DIMENSION,)
        assert DIMENSION == 128

    def test_scalar_normalisation(self):
        vec = self.encoder.encode({
            "action": "buy",
            "price": 1500,
            "volume": 20000,
            "momentum": 0.5,
            "cash": 250000,
            "positions": 3,
        })
        assert vec[:5].tolist() == pytest.approx([1.5, 2.0, 0.5, 2.5, 3.0])

    @pytest.mark.parametrize("action,slot", [("buy", 5), ("sell", 6), ("hold", 7)])
    def test_action_one_hot(self, action, slot):
        vec = self.encoder.encode({"action": action})
        one_hot = vec[5:5 + len(ACTIONS)]
        assert one_hot.sum() == 1.0
        assert vec[slot] == 1.0

    def test_unknown_action_leaves_slice_empty(self):
        vec = self.encoder.encode({"action": "short", "price": 100})
        assert not vec[5:8].any()
        assert vec[0] == pytest.approx(0.1)

    def test_reserved_dims_zero(self, make_pattern):
        vec = self.encoder.encode(make_pattern(price=999, cash=1e6))
        assert not vec[8:].any()

    def test_missing_fields_default_to_zero(self):
        vec = self.encoder.encode({"action": "hold"})
        assert not vec[:5].any()

    def test_garbage_fields_do_not_fail(self):
        vec = self.encoder.encode({"action": None, "price": "n/a", "volume": None})
        assert not vec.any()

    @pytest.mark.parametrize("price", [float("inf"), float("-inf"), float("nan"), "inf", "nan", "1e999"])
    def test_non_finite_fields_encode_to_zero(self, price):
        vec = self.encoder.encode({"action": "buy", "price": price, "volume": 5000})
        assert np.isfinite(vec).all()
        assert vec[0] == 0.0
        assert vec[1] == pytest.approx(0.5)
        assert vec[5] == 1.0

    def test_non_finite_record_fields_encode_to_zero(self):
        assert PatternRecord.from_dict({"price": "inf"}).price == 0.0

        vec = self.encoder.encode(PatternRecord(action="sell", price=float("inf"), cash=1e300, positions=2))
        assert np.isfinite(vec).all()
        assert vec[0] == 0.0
        assert vec[3] == 0.0
        assert vec[4] == 2.0
        assert vec[6] == 1.0

    def test_non_mapping_input_encodes_to_zero(self):
        assert not self.encoder.encode(None).any()

    def test_position_count_alias(self):
        vec = self.encoder.encode({"positionCount": 4})
        assert vec[4] == 4.0

    def test_record_and_dict_agree(self, make_pattern):
        data = make_pattern()
        np.testing.assert_array_equal(
            self.encoder.encode(data),
            self.encoder.encode(PatternRecord.from_dict(data)),
        )

    def test_deterministic(self, make_pattern):
        p = make_pattern()
        np.testing.assert_array_equal(self.encoder.encode(p), self.encoder.encode(p))

    def test_same_action_differs_only_in_scalars(self, make_pattern):
        a = self.encoder.encode(make_pattern("sell", price=10, volume=1, momentum=-1))
        b = self.encoder.encode(make_pattern("sell", price=900, volume=9999, momentum=2))
        diff = np.nonzero(a != b)[0]
        assert set(diff.tolist()) <= {0, 1, 2, 3, 4}
        np.testing.assert_array_equal(a[5:], b[5:])

    def test_encode_batch(self, make_pattern):
        matrix = self.encoder.encode_batch([make_pattern("buy"), make_pattern("sell")])
        assert matrix.shape == (2, DIMENSION)
        assert self.encoder.encode_batch([]).shape == (0, DIMENSION)


class TestCreateEncoder:
    def test_default(self):
        assert isinstance(create_encoder(), FeatureEncoder)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown encoder"):
            create_encoder("word2vec")

    def test_dimension_too_small(self):
        with pytest.raises(ValueError):
            FeatureEncoder(dimension=6)
