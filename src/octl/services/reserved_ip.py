"""Reserved IP reconciliation for a droplet."""

import enum
from dataclasses import dataclass
from typing import Callable, List, Optional

from octl.errors import SetupError
from octl.models import ReservedIpInfo

# Receives the unassigned reserved IPs; returns the chosen address or None to create one.
ChooseReservedIp = Callable[[List[ReservedIpInfo]], Optional[str]]


class ReservationState(enum.Enum):
    LISTING = "listing"
    ALREADY_ATTACHED = "already_attached"
    CHOOSING = "choosing"
    CREATING = "creating"
    ASSIGNING = "assigning"
    DONE = "done"


class ReservationStatus(enum.Enum):
    ALREADY_ATTACHED = "already_attached"
    ATTACHED_EXISTING = "attached_existing"
    CREATED_AND_ATTACHED = "created_and_attached"


@dataclass(frozen=True)
class ReservedIpOutcome:
    ip: str
    status: ReservationStatus

    @property
    def created(self) -> bool:
        return self.status is ReservationStatus.CREATED_AND_ATTACHED


class ReservedIpReconciler:
    """Attaches exactly one reserved IP to a droplet without duplicating any.

    An IP already attached to the droplet is returned untouched. Otherwise the
    caller picks one of the unassigned IPs or asks for a new one, which is
    created in the droplet's own region before being assigned. IPs attached to
    other droplets are never offered.
    """

    def __init__(self, digitalocean, logger, console):
        self.digitalocean = digitalocean
        self.logger = logger
        self.console = console

    def reconcile(self, droplet_id: int, choose: ChooseReservedIp) -> ReservedIpOutcome:
        state = ReservationState.LISTING
        reserved: List[ReservedIpInfo] = []
        chosen_ip: Optional[str] = None
        status = ReservationStatus.ATTACHED_EXISTING

        while state is not ReservationState.DONE:
            self.logger.debug("Reserved IP reconciliation for %s: %s", droplet_id, state.value)

            if state is ReservationState.LISTING:
                reserved = self.digitalocean.list_reserved_ips()
                attached = next((item for item in reserved if item.droplet_id == droplet_id), None)
                if attached is not None:
                    chosen_ip = attached.ip
                    state = ReservationState.ALREADY_ATTACHED
                else:
                    state = ReservationState.CHOOSING

            elif state is ReservationState.ALREADY_ATTACHED:
                status = ReservationStatus.ALREADY_ATTACHED
                state = ReservationState.DONE

            elif state is ReservationState.CHOOSING:
                unassigned = [item for item in reserved if item.droplet_id is None]
                chosen_ip = choose(unassigned)
                if chosen_ip is None:
                    state = ReservationState.CREATING
                elif chosen_ip not in {item.ip for item in unassigned}:
                    raise SetupError(f"Reserved IP {chosen_ip} is not available for assignment.")
                else:
                    status = ReservationStatus.ATTACHED_EXISTING
                    state = ReservationState.ASSIGNING

            elif state is ReservationState.CREATING:
                region = self.digitalocean.get_droplet_region(droplet_id)
                self.console.print(f"[blue]Creating reserved IP in {region}...[/blue]")
                chosen_ip = self.digitalocean.create_reserved_ip(region)
                self.console.print(f"[green]Created reserved IP {chosen_ip}.[/green]")
                status = ReservationStatus.CREATED_AND_ATTACHED
                state = ReservationState.ASSIGNING

            elif state is ReservationState.ASSIGNING:
                self.digitalocean.assign_reserved_ip(chosen_ip, droplet_id)
                state = ReservationState.DONE

        return ReservedIpOutcome(ip=chosen_ip, status=status)
