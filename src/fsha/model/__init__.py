from .variants import (
    ShaderLanguage,
    CompiledShaderDataType,
    parse_languages,
    parse_kinds,
)
from .stage import ShaderStage, parse_stage, stage_from_file_name
from .asset import (
    ShaderDataHeader,
    CompiledBlock,
    ShaderDataDescription,
    ShaderAsset,
    has_source_code,
    has_compiled_data,
    source_code_consistent,
    compiled_data_consistent,
)

__all__ = [
    "ShaderLanguage",
    "CompiledShaderDataType",
    "parse_languages",
    "parse_kinds",
    "ShaderStage",
    "parse_stage",
    "stage_from_file_name",
    "ShaderDataHeader",
    "CompiledBlock",
    "ShaderDataDescription",
    "ShaderAsset",
    "has_source_code",
    "has_compiled_data",
    "source_code_consistent",
    "compiled_data_consistent",
]
