from fsha.model.asset import (
    CompiledBlock,
    ShaderAsset,
    ShaderDataDescription,
    ShaderDataHeader,
    compiled_data_consistent,
    has_compiled_data,
    has_source_code,
    source_code_consistent,
)
from fsha.model.stage import ShaderStage
from fsha.model.variants import CompiledShaderDataType as K, ShaderLanguage as L

SRC_HEADER = ShaderDataHeader(source_code_offset=48, source_code_size=9)
CMP_HEADER = ShaderDataHeader(
    compiled_data_offset=48, compiled_data_size=9, compiled_data_block_count=1
)
EMPTY_HEADER = ShaderDataHeader()


def test_empty_containers_normalize_to_none():
    d = ShaderDataDescription(source_code={}, compiled_blocks=[])
    assert d.source_code is None
    assert d.compiled_blocks is None
    assert d.is_empty


def test_flags_follow_payloads():
    d = ShaderDataDescription(
        source_code={L.HLSL: b"a"},
        compiled_blocks=[CompiledBlock(K.DXIL, b"b")],
    )
    assert d.source_languages == L.HLSL
    assert d.compiled_kinds == K.DXIL


def test_has_source_code():
    assert not has_source_code(None)
    assert not has_source_code(EMPTY_HEADER)
    assert has_source_code(SRC_HEADER)
    assert has_source_code(SRC_HEADER, ShaderDataDescription(source_code={L.GLSL: b"x"}))
    assert not has_source_code(SRC_HEADER, ShaderDataDescription())


def test_has_compiled_data():
    assert not has_compiled_data(None)
    assert not has_compiled_data(SRC_HEADER)
    assert has_compiled_data(CMP_HEADER)
    desc = ShaderDataDescription(compiled_blocks=[CompiledBlock(K.SPIRV, b"x")])
    assert has_compiled_data(CMP_HEADER, desc)
    assert not has_compiled_data(CMP_HEADER, ShaderDataDescription())


def test_source_consistency():
    with_source = ShaderDataDescription(source_code={L.HLSL: b"x"})
    assert source_code_consistent(SRC_HEADER, with_source)
    assert not source_code_consistent(SRC_HEADER, ShaderDataDescription())
    assert not source_code_consistent(EMPTY_HEADER, with_source)
    assert source_code_consistent(None, with_source)
    assert source_code_consistent(SRC_HEADER, None)


def test_compiled_consistency():
    with_blocks = ShaderDataDescription(compiled_blocks=[CompiledBlock(K.DXBC, b"x")])
    assert compiled_data_consistent(CMP_HEADER, with_blocks)
    assert not compiled_data_consistent(CMP_HEADER, ShaderDataDescription())
    assert not compiled_data_consistent(EMPTY_HEADER, with_blocks)
    # declared-but-skipped kinds still count as present
    assert compiled_data_consistent(
        CMP_HEADER, ShaderDataDescription(compiled_kinds=K.METAL_ARCHIVE)
    )


def test_select_keeps_requested_variants():
    d = ShaderDataDescription(
        source_code={L.HLSL: b"h", L.GLSL: b"g"},
        compiled_blocks=[CompiledBlock(K.DXBC, b"1"), CompiledBlock(K.SPIRV, b"2")],
    )
    s = d.select(L.GLSL, K.SPIRV | K.METAL_ARCHIVE)
    assert s.source_code == {L.GLSL: b"g"}
    assert s.compiled_blocks == [CompiledBlock(K.SPIRV, b"2")]
    assert d.select(L(0), K.METAL_ARCHIVE).is_empty


def test_asset_accessors():
    asset = ShaderAsset(
        header=EMPTY_HEADER,
        description=ShaderDataDescription(
            compiled_blocks=[CompiledBlock(K.DXIL, b"dxil"), CompiledBlock(K.SPIRV, b"spv")]
        ),
    )
    assert asset.byte_code_dxil == b"dxil"
    assert asset.byte_code_spirv == b"spv"
    assert asset.byte_code_dxbc is None
    assert asset.byte_code_metal is None
    assert asset.get_source_code(L.HLSL) is None
    assert not asset.requires_compilation
    assert asset.is_valid()


def test_source_only_asset_requires_compilation():
    asset = ShaderAsset(
        header=EMPTY_HEADER,
        description=ShaderDataDescription(source_code={L.METAL: b"kernel"}),
    )
    assert asset.requires_compilation
    assert asset.source_code == {L.METAL: b"kernel"}
    assert not ShaderAsset(header=EMPTY_HEADER).is_valid()


def test_header_to_dict():
    d = SRC_HEADER.to_dict()
    assert d["version"] == "0.4"
    assert d["header_size"] == 48
    assert d["source_code"] == {"offset": 48, "size": 9}


def test_select_keeps_stage_and_capabilities():
    d = ShaderDataDescription(
        source_code={L.HLSL: b"hlsl"},
        stage=ShaderStage.COMPUTE,
        min_capabilities="sm_5_0",
        max_capabilities="sm_6_6",
    )
    s = d.select(L.HLSL, K(0))
    assert s.stage is ShaderStage.COMPUTE
    assert (s.min_capabilities, s.max_capabilities) == ("sm_5_0", "sm_6_6")
    assert ShaderAsset(header=EMPTY_HEADER, description=s).stage is ShaderStage.COMPUTE


def test_header_to_dict_names_stage():
    assert ShaderDataHeader(stage=ShaderStage.FRAGMENT).to_dict()["stage"] == "FRAGMENT"
    assert ShaderDataHeader(stage=3).to_dict()["stage"] == "0x03"
