# Overview: Ownership and assignment lookups over organizations, venues, and devices.

"""
Scoping helpers.

An admin owns organizations (organizations.admin_id) and, through them,
venues and devices. A manager reaches an organization assigned to it
(organizations.manager_id) and any venue assigned to it directly
(venues.manager_id). A device's assigned manager is its venue's manager
when set, else its organization's manager.

Lookups that fail for scope reasons raise NotFound rather than Forbidden
so callers cannot probe for ids outside their fleet.
"""

from __future__ import annotations

from ..errors import NotFound
from ..extensions import db
from ..models import Device, Organization, Venue


def get_admin_org_ids(admin_id: int) -> list[int]:
    rows = db.session.query(Organization.id).filter(Organization.admin_id == admin_id).all()
    return [row[0] for row in rows]


def get_manager_org_ids(manager_id: int) -> list[int]:
    rows = db.session.query(Organization.id).filter(Organization.manager_id == manager_id).all()
    return [row[0] for row in rows]


def get_venue_ids_for_orgs(org_ids: list[int]) -> list[int]:
    if not org_ids:
        return []
    rows = db.session.query(Venue.id).filter(Venue.organization_id.in_(org_ids)).all()
    return [row[0] for row in rows]


def get_admin_venue_ids(admin_id: int) -> list[int]:
    return get_venue_ids_for_orgs(get_admin_org_ids(admin_id))


def get_manager_venue_ids(manager_id: int) -> list[int]:
    """Venues of the manager's organizations plus venues assigned to it directly."""
    venue_ids = set(get_venue_ids_for_orgs(get_manager_org_ids(manager_id)))
    direct = db.session.query(Venue.id).filter(Venue.manager_id == manager_id).all()
    venue_ids.update(row[0] for row in direct)
    return sorted(venue_ids)


def get_devices_in_venues(venue_ids: list[int], for_update: bool = False) -> list[Device]:
    if not venue_ids:
        return []
    query = db.session.query(Device).filter(Device.venue_id.in_(venue_ids)).order_by(Device.id)
    if for_update:
        query = query.with_for_update()
    return query.all()


def get_owning_admin_id(device: Device) -> int:
    return device.venue.organization.admin_id


def get_assigned_manager_id(device: Device) -> int | None:
    return device.venue.assigned_manager_id


def require_admin_organization(admin_id: int, org_id: int) -> Organization:
    org = db.session.query(Organization).filter_by(id=org_id, admin_id=admin_id).first()
    if org is None:
        raise NotFound("Organization not found or does not belong to you")
    return org


def require_admin_venue(admin_id: int, venue_id: int) -> Venue:
    venue = (
        db.session.query(Venue)
        .join(Organization, Venue.organization_id == Organization.id)
        .filter(Venue.id == venue_id, Organization.admin_id == admin_id)
        .first()
    )
    if venue is None:
        raise NotFound("Venue not found or does not belong to you")
    return venue


def require_manager_organization(manager_id: int, org_id: int) -> Organization:
    org = db.session.query(Organization).filter_by(id=org_id, manager_id=manager_id).first()
    if org is None:
        raise NotFound("Organization not found or not assigned to you")
    return org


def require_manager_venue(manager_id: int, venue_id: int) -> Venue:
    venue = db.session.get(Venue, venue_id)
    if venue is None:
        raise NotFound("Venue not found or not assigned to you")
    if venue.manager_id != manager_id and venue.organization.manager_id != manager_id:
        raise NotFound("Venue not found or not assigned to you")
    return venue


def device_in_admin_scope(device: Device, admin_id: int) -> bool:
    return get_owning_admin_id(device) == admin_id


def device_in_manager_scope(device: Device, manager_id: int) -> bool:
    venue = device.venue
    return venue.manager_id == manager_id or venue.organization.manager_id == manager_id
