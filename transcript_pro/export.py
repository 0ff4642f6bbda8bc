import json
import os
from typing import List, Tuple

from .models import ProcessedSegment
from .segment_format import assemble_srt
from .supabase_store import segment_to_record


def write_outputs(segments: List[ProcessedSegment], output_dir: str, base: str) -> Tuple[str, str]:
    """Write <base>.json (flat records) and <base>.srt; return both paths."""
    os.makedirs(output_dir, exist_ok=True)
    json_path = os.path.join(output_dir, base + ".json")
    srt_path = os.path.join(output_dir, base + ".srt")

    records = [dict(segment_id=s.segment_id, **segment_to_record(s)) for s in segments]
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(records, f, ensure_ascii=False, indent=2)
    with open(srt_path, "w", encoding="utf-8") as f:
        f.write(assemble_srt(segments))
    return json_path, srt_path
