"""Health subsystem — prober, aggregator, scheduler, connectivity inspector."""

from .aggregator import HealthAggregator
from .connectivity import ConnectivityStatus, current_status
from .errors import ConfigurationError, InvalidEndpointError, MonitorError
from .models import Endpoint, EndpointProbeResult, FailureReason, HealthReport, OverallStatus
from .monitor import HealthMonitor
from .prober import probe
from .scheduler import MonitorHandle, MonitorScheduler
