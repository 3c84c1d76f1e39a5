"""Built-in canonical schemas for the football sources.

StatsBomb open data (nested event JSON), SkillCorner tracking exports
(JSON lines) and delimited id mapping tables.
"""

from bronze.schema.registry import SchemaRegistry

DEFAULT_SOURCES = {
    "statsbomb": ["competitions", "matches", "events", "lineups", "three_sixty"],
    "skillcorner": ["skillcorner_matches", "tracking"],
    "mappings": ["player_mapping", "team_mapping"],
}

DEFAULT_RECORD_TYPES = {
    "competitions": {
        "directory": ".",
        "file_pattern": "competitions.json",
        "require_rows": True,
        "columns": {
            "competition_id": "integer",
            "season_id": "integer",
            "country_name": "text",
            "competition_name": "text",
            "competition_gender": "text",
            "competition_youth": "boolean",
            "competition_international": "boolean",
            "season_name": "text",
            "match_updated": "temporal",
            "match_available": "temporal",
        },
    },
    "matches": {
        "columns": {
            "match_id": "integer",
            "match_date": "temporal",
            "kick_off": "text",
            "competition_competition_id": "integer",
            "competition_competition_name": "text",
            "season_season_id": "integer",
            "season_season_name": "text",
            "home_team_home_team_id": "integer",
            "home_team_home_team_name": "text",
            "away_team_away_team_id": "integer",
            "away_team_away_team_name": "text",
            "home_score": "integer",
            "away_score": "integer",
            "match_status": "text",
            "match_week": "integer",
            "competition_stage_name": "text",
            "stadium_name": "text",
            "referee_name": "text",
            "last_updated": "temporal",
        },
    },
    "events": {
        "unit_id_column": "match_id",
        "list_policy": "index",
        "aliases": {"id": "event_id"},
        "columns": {
            "match_id": "integer",
            "event_id": "text",
            "index": "integer",
            "period": "integer",
            "timestamp": "text",
            "minute": "integer",
            "second": "integer",
            "type_id": "integer",
            "type_name": "text",
            "possession": "integer",
            "possession_team_id": "integer",
            "possession_team_name": "text",
            "play_pattern_name": "text",
            "team_id": "integer",
            "team_name": "text",
            "player_id": "integer",
            "player_name": "text",
            "position_name": "text",
            "location_0": "numeric",
            "location_1": "numeric",
            "duration": "numeric",
            "under_pressure": "boolean",
            "pass_end_location_0": "numeric",
            "pass_end_location_1": "numeric",
            "pass_outcome_name": "text",
            "carry_end_location_0": "numeric",
            "carry_end_location_1": "numeric",
            "shot_statsbomb_xg": "numeric",
            "shot_outcome_name": "text",
            "tactics_formation": "integer",
        },
    },
    "lineups": {
        "row_path": "lineup",
        "unit_id_column": "match_id",
        "columns": {
            "match_id": "integer",
            "team_id": "integer",
            "team_name": "text",
            "player_id": "integer",
            "player_name": "text",
            "player_nickname": "text",
            "jersey_number": "integer",
            "country_name": "text",
            "positions_0_position": "text",
            "positions_0_from": "text",
        },
    },
    "three_sixty": {
        "directory": "three-sixty",
        "row_path": "freeze_frame",
        "unit_id_column": "match_id",
        "columns": {
            "match_id": "integer",
            "event_uuid": "text",
            "visible_area": "nested",
            "teammate": "boolean",
            "actor": "boolean",
            "keeper": "boolean",
            "location": "nested",
        },
    },
    "skillcorner_matches": {
        "directory": "matches",
        "aliases": {"id": "match_id"},
        "require_rows": True,
        "columns": {
            "match_id": "integer",
            "date_time": "temporal",
            "home_team_id": "integer",
            "home_team_name": "text",
            "away_team_id": "integer",
            "away_team_name": "text",
            "home_team_score": "integer",
            "away_team_score": "integer",
            "stadium_name": "text",
            "competition_edition_name": "text",
        },
    },
    "tracking": {
        "file_pattern": "*.jsonl",
        "row_path": "data",
        "unit_id_column": "match_id",
        "preserve_extra": True,
        "columns": {
            "match_id": "integer",
            "frame": "integer",
            "timestamp": "text",
            "period": "integer",
            "possession_player_id": "integer",
            "possession_group": "text",
            "track_id": "integer",
            "trackable_object": "integer",
            "x": "numeric",
            "y": "numeric",
            "z": "numeric",
            "is_visible": "boolean",
        },
    },
    "player_mapping": {
        "file_pattern": "*.csv",
        "require_rows": True,
        "columns": {
            "statsbomb_player_id": "integer",
            "skillcorner_player_id": "integer",
            "player_name": "text",
            "birth_date": "temporal",
        },
    },
    "team_mapping": {
        "file_pattern": "*.csv",
        "require_rows": True,
        "columns": {
            "statsbomb_team_id": "integer",
            "skillcorner_team_id": "integer",
            "team_name": "text",
        },
    },
}


def default_registry() -> SchemaRegistry:
    """Registry holding the built-in football schemas."""
    return SchemaRegistry.from_config(
        {"sources": DEFAULT_SOURCES, "record_types": DEFAULT_RECORD_TYPES}
    )
