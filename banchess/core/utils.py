import logging

logger = logging.getLogger("banchess.search")


def log_info(d, score, nodes, elapsed, pv, forced_win_threshold):
    nps = int(nodes / elapsed) if elapsed > 0 else 0
    if abs(score) > forced_win_threshold:
        score_str = f"win {'+' if score > 0 else '-'}"
    else:
        score_str = f"cp {score}"
    pv_str = " ".join(a.uci() for a in pv) if pv else "-"
    logger.info("info depth %d score %s nodes %d nps %d time %d pv %s",
                d, score_str, nodes, nps, int(elapsed * 1000), pv_str)
