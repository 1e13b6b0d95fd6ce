"""
ID生成单元测试

每个模块完成后必须运行：pytest tests/unit/test_identity.py -v
"""

import pytest

from tablify.config import IdentityConfig
from tablify.core import EntityKind, IdGenerator, validate_id
from tablify.interfaces import DefinitionError, DuplicateIdError


class TestIdGenerator:
    """ID生成器测试"""

    def test_prefix_per_kind(self, id_generator: IdGenerator):
        """测试各实体种类的前缀与独立计数"""
        assert id_generator.generate_id(EntityKind.ROW) == "jsr1"
        assert id_generator.generate_id(EntityKind.ROW) == "jsr2"
        assert id_generator.generate_id(EntityKind.COLUMN) == "jsc1"
        assert id_generator.generate_id(EntityKind.GRID) == "jsg1"

    def test_skip_taken(self, id_generator: IdGenerator):
        """测试跳过已占用ID"""
        assert id_generator.generate_id(EntityKind.ROW, taken={"jsr1", "jsr2"}) == "jsr3"

    def test_never_reissue(self, id_generator: IdGenerator):
        """测试已发放的ID不再发放（即使已不在轴上）"""
        first = id_generator.generate_id(EntityKind.COLUMN)
        second = id_generator.generate_id(EntityKind.COLUMN, taken=set())
        assert first != second

    def test_from_config(self):
        """测试按配置创建"""
        generator = IdGenerator.from_config(IdentityConfig(row_prefix="r", start=10))
        assert generator.generate_id(EntityKind.ROW) == "r10"
        assert generator.generate_id(EntityKind.COLUMN) == "jsc10"


class TestValidateId:
    """ID校验测试"""

    def test_valid(self):
        assert validate_id("a", {"b"}) == "a"

    def test_duplicate(self):
        with pytest.raises(DuplicateIdError):
            validate_id("a", {"a"})

    @pytest.mark.parametrize("proposed", ["", None, 3])
    def test_invalid(self, proposed):
        with pytest.raises(DefinitionError):
            validate_id(proposed, set())
