"""Communication logging module.

Records serial port lifecycle events and the bytes exchanged with the
device for debugging and troubleshooting.
"""

from modemport.logging.log_models import LogEntry
from modemport.logging.file_handler import FileHandler
from modemport.logging.communication_logger import CommunicationLogger

__all__ = ['LogEntry', 'FileHandler', 'CommunicationLogger']
