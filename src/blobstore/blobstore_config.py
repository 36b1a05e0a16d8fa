"""Default configuration variables for BlobStore"""

############### Store Path ###############
# Default path for `FileBlobStore` if no path is provided (relative to the working directory)
STORE_PATH = ".git"
# Name of the configuration file written to the store root on initialization
CONFIG_FILE = "blobstore.yaml"

############### Directory Structure ###############
OBJECTS_DIR = "objects"
REFS_DIR = "refs"
HEAD_FILE = "HEAD"
# Written verbatim, other tooling reads this pointer even though branches are not implemented
HEAD_CONTENTS = "ref: refs/heads/main\n"
# Desired amount of directories when sharding an address to form the entry path
DIR_DEPTH = 1  # WARNING: DO NOT CHANGE, EXISTING READERS EXPECT objects/xx/yyyy...
# Width of directories created when sharding an address to form the entry path
DIR_WIDTH = 2  # WARNING: DO NOT CHANGE, EXISTING READERS EXPECT objects/xx/yyyy...
# Example:
# Below, the object for "hi\n" is listed in a bucket 1 level deep (DIR_DEPTH=1),
# with the bucket name consisting of 2 characters (DIR_WIDTH=2).
#    .git/objects
#    └── 45
#        └── b983be36b73c0788dc9cbcb76cbb80fc7bb057

############### Compression ###############
# zlib compression level, -1 selects zlib's default (currently 6)
COMPRESSION_LEVEL = -1
COMPRESSION_LEVEL_RANGE = range(-1, 10)

############### Hash Algorithm ###############
# Hash algorithm used to calculate an object's address
ALGORITHM = "sha1"
ADDRESS_LENGTH = 40
