from typing import Annotated
from fastapi import Depends
from sqlalchemy.orm import Session
from ..core.clock import Clock, get_clock
from ..db.session import get_db


DbSession = Annotated[Session, Depends(get_db)]
CurrentClock = Annotated[Clock, Depends(get_clock)]
