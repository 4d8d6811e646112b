from engine.tools.expert_directory import (
    ExpertDirectory,
    ExpertRecord,
    SheetCsvFetcher,
    build_expert_directory,
    parse_expert_csv,
    render_expert_pool,
)

__all__ = [
    "ExpertDirectory",
    "ExpertRecord",
    "SheetCsvFetcher",
    "build_expert_directory",
    "parse_expert_csv",
    "render_expert_pool",
]
