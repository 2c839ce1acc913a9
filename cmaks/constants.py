# The name of the project
PROJECT_NAME = "cmaks"

# The environment variable pointing to the server config file
CONFIG_ENV_VAR = "CMAKS_CONFIG"

# Every cluster lives in its own resource group named after the cluster
RESOURCE_GROUP_SUFFIX = "-group"

# Resource provider path of an AKS managed cluster
MANAGED_CLUSTER_PROVIDER = "Microsoft.ContainerService/managedClusters"

# The secret holding the Azure settings of the cluster autoscaler
AUTOSCALER_SECRET_NAME = "cluster-autoscaler-azure"

# The namespace where the cluster autoscaler runs
AUTOSCALER_NAMESPACE = "kube-system"

# The name of the autoscaler deployment and its service account
AUTOSCALER_NAME = "cluster-autoscaler"

# Upstream cluster autoscaler image
AUTOSCALER_IMAGE = "registry.k8s.io/autoscaling/cluster-autoscaler:v1.28.2"

# VM type the cluster autoscaler uses to talk to AKS
AUTOSCALER_VM_TYPE = "AKS"

# Default VM size of an agent pool
DEFAULT_VM_SIZE = "Standard_DS2_v2"
