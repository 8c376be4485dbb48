class Config:
    # Truncated minimax search
    DILUTION_LIMIT = 256.0          # expansion credit handed to each root move
    ROLLOUT_BEAMS = 16              # greedy-capture rollouts per move decision
    ROLLOUT_DEPTH = 5               # plies per rollout
    MAX_SEARCH_DEPTH = None         # optional hard ply cap, dilution bounds the search otherwise

    # Regression trees
    EXTENDED_FEATURES = True        # train on the 950-wide extended feature layout
    MATERIAL_EVALUATOR = "simple"   # added to the trees; "offside" counts advanced pawns double
    MIN_LEAF_SIZE = 0               # a side is split further only if it holds more samples
    MAX_TREE_DEPTH = 4
    TREE_FAN_OUT = 4096             # grow both subtrees concurrently above this many samples

    # Gradient boosting
    MAX_TREES = 8                   # including the bias tree
    LEARNING_RATE = 1.0             # damping applied to residual targets
    L2_DECAY = 1.0
    EARLY_STOPPING_PATIENCE = 3
    VALIDATION_FRACTION = 0.1

    # Self-play
    NUM_ITERATIONS = 2048
    NUM_SELFPLAY_GAMES = 16         # games per iteration
    NUM_WORKERS = 4
    QUEUE_SIZE = 1024
    NO_PROGRESS_LIMIT = 51          # plies without capture or pawn move before a draw
    MAX_GAME_LENGTH = 400
    VALUE_SCALE = 1.0               # label of a won game

    # Data augmentation (board symmetries)
    USE_AUGMENT_SYMMETRIES = True

    # Arena
    NUM_ARENA_GAMES = 20            # per saved model, 0 disables the arena
    ARENA_OPPONENT = "greedy"       # baseline engine from engines.ENGINES

    # Logging / saving
    LOG_DIR = "./logs"
    MODEL_DIR = "./models"
    PGN_DIR = None                  # e.g. "./games" to export self-play games
    SAVE_INTERVAL = 1               # iterations
