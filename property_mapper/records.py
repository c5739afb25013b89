"""Fixed-shape record builders for the entities of the County data group.

Every builder returns a dict carrying every key the shared schema defines, so
county scripts only fill what the page actually provides.
"""
import copy
import re

from .errors import UnknownEnumValueError

SOURCE_FIELDS = ["source_http_request", "request_identifier"]

LAYOUT_FIELDS = [
    "space_type",
    "space_index",
    "space_type_index",
    "building_number",
    "flooring_material_type",
    "size_square_feet",
    "floor_level",
    "has_windows",
    "window_design_type",
    "window_material_type",
    "window_treatment_type",
    "is_finished",
    "furnished",
    "paint_condition",
    "flooring_wear",
    "clutter_level",
    "visible_damage",
    "countertop_material",
    "cabinet_style",
    "fixture_finish_quality",
    "design_style",
    "natural_light_quality",
    "decor_elements",
    "pool_type",
    "pool_equipment",
    "pool_installation_date",
    "spa_type",
    "spa_installation_date",
    "safety_features",
    "view_type",
    "lighting_features",
    "condition_issues",
    "is_exterior",
    "pool_condition",
    "pool_surface_type",
    "pool_water_quality",
    "livable_area_sq_ft",
    "total_area_sq_ft",
    "area_under_air_sq_ft",
    "heated_area_sq_ft",
    "built_year",
]

STRUCTURE_FIELDS = [
    "architectural_style_type",
    "attachment_type",
    "exterior_wall_material_primary",
    "exterior_wall_material_secondary",
    "exterior_wall_condition",
    "exterior_wall_insulation_type",
    "flooring_material_primary",
    "flooring_material_secondary",
    "subfloor_material",
    "flooring_condition",
    "interior_wall_structure_material",
    "interior_wall_surface_material_primary",
    "interior_wall_surface_material_secondary",
    "interior_wall_finish_primary",
    "interior_wall_finish_secondary",
    "interior_wall_condition",
    "roof_covering_material",
    "roof_underlayment_type",
    "roof_structure_material",
    "roof_design_type",
    "roof_condition",
    "roof_age_years",
    "roof_date",
    "gutters_material",
    "gutters_condition",
    "roof_material_type",
    "foundation_type",
    "foundation_material",
    "foundation_waterproofing",
    "foundation_condition",
    "ceiling_structure_material",
    "ceiling_surface_material",
    "ceiling_insulation_type",
    "ceiling_height_average",
    "ceiling_condition",
    "exterior_door_material",
    "interior_door_material",
    "window_frame_material",
    "window_glazing_type",
    "window_operation_type",
    "window_screen_material",
    "primary_framing_material",
    "secondary_framing_material",
    "structural_damage_indicators",
    "finished_base_area",
    "finished_upper_story_area",
    "finished_basement_area",
    "unfinished_base_area",
    "number_of_stories",
    "number_of_buildings",
    "building_number",
]

UTILITY_FIELDS = [
    "cooling_system_type",
    "heating_system_type",
    "heating_fuel_type",
    "public_utility_type",
    "sewer_type",
    "water_source_type",
    "plumbing_system_type",
    "plumbing_system_type_other_description",
    "electrical_panel_capacity",
    "electrical_wiring_type",
    "hvac_condensing_unit_present",
    "hvac_system_configuration",
    "electrical_wiring_type_other_description",
    "solar_panel_present",
    "solar_panel_type",
    "solar_panel_type_other_description",
    "smart_home_features",
    "smart_home_features_other_description",
    "hvac_unit_condition",
    "solar_inverter_visible",
    "hvac_unit_issues",
    "building_number",
]

PROPERTY_FIELDS = [
    "parcel_identifier",
    "property_type",
    "property_usage_type",
    "build_status",
    "structure_form",
    "ownership_estate_type",
    "property_legal_description_text",
    "property_structure_built_year",
    "property_effective_built_year",
    "livable_floor_area",
    "total_area",
    "area_under_air",
    "number_of_units_type",
    "number_of_units",
    "subdivision",
    "zoning",
    "historic_designation",
]

ADDRESS_FIELDS = [
    "city_name",
    "country_code",
    "county_name",
    "latitude",
    "longitude",
    "plus_four_postal_code",
    "postal_code",
    "state_code",
    "street_name",
    "street_post_directional_text",
    "street_pre_directional_text",
    "street_number",
    "street_suffix_type",
    "unit_identifier",
    "route_number",
    "township",
    "range",
    "section",
    "block",
    "lot",
    "municipality_name",
    "unnormalized_address",
]

LOT_FIELDS = [
    "lot_type",
    "lot_length_feet",
    "lot_width_feet",
    "lot_area_sqft",
    "lot_size_acre",
    "landscaping_features",
    "view",
    "fencing_type",
    "fence_height",
    "fence_length",
    "driveway_material",
    "driveway_condition",
    "lot_condition_issues",
]

TAX_FIELDS = [
    "tax_year",
    "property_assessed_value_amount",
    "property_market_value_amount",
    "property_building_amount",
    "property_land_amount",
    "property_taxable_value_amount",
    "monthly_tax_amount",
    "yearly_tax_amount",
    "period_start_date",
    "period_end_date",
]

SALES_FIELDS = [
    "ownership_transfer_date",
    "purchase_price_amount",
    "sale_type",
]

PERSON_FIELDS = [
    "birth_date",
    "first_name",
    "last_name",
    "middle_name",
    "prefix_name",
    "suffix_name",
    "us_citizenship_status",
    "veteran_status",
]

COMPANY_FIELDS = ["name"]

DEED_FIELDS = ["deed_type", "book", "page", "volume", "instrument_number"]

FILE_FIELDS = ["document_type", "file_format", "ipfs_url", "name", "original_url"]

PROPERTY_IMPROVEMENT_FIELDS = [
    "improvement_type",
    "improvement_status",
    "improvement_action",
    "permit_number",
    "permit_issue_date",
    "application_received_date",
    "completion_date",
    "final_inspection_date",
    "permit_close_date",
    "fee",
    "contractor_type",
    "is_owner_builder",
    "permit_required",
]

MAILING_ADDRESS_FIELDS = ["unnormalized_address", "latitude", "longitude"]

FLOOD_STORM_FIELDS = [
    "community_id",
    "effective_date",
    "evacuation_zone",
    "fema_search_url",
    "flood_insurance_required",
    "flood_zone",
    "map_version",
    "panel_number",
]

UNITS_TYPE_BY_COUNT = {1: "One", 2: "Two", 3: "Three", 4: "Four"}


def _new(fields, **values):
    record = dict.fromkeys(fields)
    unknown = set(values) - set(fields) - set(SOURCE_FIELDS)
    if unknown:
        raise KeyError(f"Unknown field(s): {', '.join(sorted(unknown))}")
    record.update(values)
    return record


def new_layout(space_type=None, space_index=None, **values):
    values.setdefault("is_exterior", False)
    values.setdefault("is_finished", False)
    return _new(LAYOUT_FIELDS, space_type=space_type, space_index=space_index, **values)


def new_structure(**values):
    return _new(STRUCTURE_FIELDS, **values)


def new_utility(**values):
    values.setdefault("solar_panel_present", False)
    values.setdefault("solar_inverter_visible", False)
    return _new(UTILITY_FIELDS, **values)


def new_property(**values):
    return _new(PROPERTY_FIELDS, **values)


def new_address(**values):
    values.setdefault("country_code", "US")
    return _new(ADDRESS_FIELDS, **values)


def new_lot(**values):
    return _new(LOT_FIELDS, **values)


def new_tax(**values):
    return _new(TAX_FIELDS, **values)


def new_sales_history(**values):
    return _new(SALES_FIELDS, **values)


def new_person(**values):
    return _new(PERSON_FIELDS, **values)


def new_company(**values):
    return _new(COMPANY_FIELDS, **values)


def new_deed(**values):
    return _new(DEED_FIELDS, **values)


def new_file(**values):
    return _new(FILE_FIELDS, **values)


def new_property_improvement(**values):
    return _new(PROPERTY_IMPROVEMENT_FIELDS, **values)


def new_mailing_address(**values):
    return _new(MAILING_ADDRESS_FIELDS, **values)


def new_flood_storm(**values):
    return _new(FLOOD_STORM_FIELDS, **values)


def prune_nulls(record):
    return {k: v for k, v in record.items() if v is not None}


def with_source(record, seed):
    """Stamp the seed's request provenance onto a record."""
    stamped = dict(record)
    seed = seed or {}
    stamped["source_http_request"] = copy.deepcopy(seed.get("source_http_request"))
    stamped["request_identifier"] = seed.get("request_identifier") or seed.get("parcel_id")
    return stamped


def lot_type_for_acres(acres):
    if acres is None:
        return None
    return "LessThanOrEqualToOneQuarterAcre" if acres <= 0.25 else "GreaterThanOneQuarterAcre"


def units_type_for_count(count, path="property.number_of_units_type"):
    if count is None:
        return None
    try:
        return UNITS_TYPE_BY_COUNT[int(count)]
    except (KeyError, ValueError, TypeError):
        raise UnknownEnumValueError(count, path)


# Sub-area and extra-feature descriptions -> layout space type, first match wins
SPACE_TYPE_RULES = [
    (("POOL", "HOUSE"), "Pool House"),
    (("POOL",), "Outdoor Pool"),
    (("GARAGE",), "Attached Garage"),
    ((" SHED",), "Shed"),
    (("GREENHOUSE",), "Greenhouse"),
    (("PORCH", "ENCLOSED"), "Enclosed Porch"),
    (("PORCH", "OPEN"), "Open Porch"),
    (("PORCH", "SCREEN"), "Screened Porch"),
    (("PORCH",), "Porch"),
    (("PATIO",), "Patio"),
    (("BARN",), "Barn"),
    (("SPA",), "Hot Tub / Spa Area"),
    (("SUMMER KITCHEN",), "Outdoor Kitchen"),
]


def space_type_for_description(description):
    text = re.sub(r"\s+", " ", str(description or "")).strip().upper()
    if not text:
        return None
    return next((space_type for words, space_type in SPACE_TYPE_RULES if all(w in text for w in words)), None)
