"""Statistical building blocks: transforms, Gaussian conditioning and moment samplers."""

from . import gaussian as gaussian
from . import moments as moments
from . import transforms as transforms
