"""User-facing descriptions of classified jurisdictions."""

from jurisdiction_engine.schemas.models import (
    COUNTY_GOVERNED_TYPES,
    AreaInfo,
    JurisdictionDetectionResult,
    JurisdictionType,
    LevelRule,
    RepresentativeLevel,
    RepresentativeRules,
)


def representative_rules(result: JurisdictionDetectionResult) -> RepresentativeRules:
    """Explain which representative levels apply to ``result``.

    Federal, state and county always apply. Municipal applies only where
    there is a local government of its own; everywhere else it is excluded
    and the county stands in as local government.
    """
    name = result.name or "This area"
    county = result.county or "the county"
    has_local = result.has_local_representatives

    if has_local:
        municipal_reason = f"{name} has its own local government"
    elif result.jurisdiction_type in COUNTY_GOVERNED_TYPES:
        municipal_reason = f"{name} is unincorporated and governed at the county level"
    else:
        municipal_reason = f"No municipal government could be confirmed for {name}"

    applicable = (
        LevelRule(level=RepresentativeLevel.FEDERAL, applicable=True,
                  reason="All areas have federal representatives"),
        LevelRule(level=RepresentativeLevel.STATE, applicable=True,
                  reason="All areas have state representatives"),
        LevelRule(level=RepresentativeLevel.COUNTY, applicable=True,
                  reason="All areas are within county jurisdiction"),
        LevelRule(level=RepresentativeLevel.MUNICIPAL, applicable=has_local,
                  reason=municipal_reason),
    )

    excluded: tuple[RepresentativeLevel, ...] = ()
    special: list[str] = []
    if not has_local:
        excluded = (RepresentativeLevel.MUNICIPAL,)
        special.append("Display county-level representatives only for local government")
        if result.jurisdiction_type in COUNTY_GOVERNED_TYPES:
            special.append(f"This is an unincorporated area of {county}")
    if result.jurisdiction_type == JurisdictionType.SPECIAL_DISTRICT:
        special.append("May have additional special district representatives")

    return RepresentativeRules(
        applicable_levels=applicable,
        excluded_levels=excluded,
        special_rules=tuple(special),
    )


def describe_area(result: JurisdictionDetectionResult) -> AreaInfo:
    """Build the title/description block shown above a representative roster."""
    name = result.name or "This area"
    county = result.county or "the county"
    jtype = result.jurisdiction_type
    rules = representative_rules(result)

    if jtype == JurisdictionType.INCORPORATED_CITY:
        return AreaInfo(
            title=f"City of {name}",
            description=f"{name} is an incorporated city in {county}.",
            government_structure="This city has its own local government with a mayor and city council.",
            representatives="You have representatives at the city, county, state, and federal levels.",
            rules=rules,
        )
    if jtype == JurisdictionType.UNINCORPORATED_AREA:
        return AreaInfo(
            title=name,
            description=f"{name} is an unincorporated area in {county}.",
            government_structure="This area is governed directly by the county government.",
            representatives=(
                "You have representatives at the county, state, and federal levels. "
                "There are no city-level representatives."
            ),
            rules=rules,
        )
    if jtype == JurisdictionType.CENSUS_DESIGNATED_PLACE:
        return AreaInfo(
            title=f"{name} (Unincorporated)",
            description=f"{name} is a census designated place in {county}.",
            government_structure="This community is unincorporated and governed by the county.",
            representatives="You have representatives at the county, state, and federal levels.",
            rules=rules,
        )
    if jtype == JurisdictionType.SPECIAL_DISTRICT:
        return AreaInfo(
            title=f"{name} (Special District)",
            description=f"{name} is a special district in {county}.",
            government_structure="This area has specialized local governance for specific services.",
            representatives=(
                "You may have special district representatives in addition to "
                "county, state, and federal representatives."
            ),
            rules=rules,
        )
    return AreaInfo(
        title=name,
        description=f"Area in {county}." if result.county else "Location could not be determined.",
        government_structure="Government structure varies.",
        representatives="Representative structure may vary.",
        rules=rules,
    )
