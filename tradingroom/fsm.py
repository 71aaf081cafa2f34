from __future__ import annotations

from statemachine import State, StateMachine


class RoomFSM(StateMachine):
    """Ticking state of a room.

    - `active`: prices walk and win conditions are checked every tick.
    - `stopped`: a win condition fired; only a settings update restarts the room.
    """

    active = State("active", value="active", initial=True)
    stopped = State("stopped", value="stopped")

    finish = active.to(stopped)
    restart = stopped.to(active) | active.to.itself()
