# Robust orientation and in-circle predicates.
# The fast path is the floating point evaluation from J.R. Shewchuk's
# predicates, guarded by his static error bounds.  When the bound
# cannot certify the sign, the determinant is recomputed exactly with
# rationals.  Inputs must be finite floats or integers.

from fractions import Fraction

## Initialization:
#  figure out machine epsilon the same way triangle.c does.
half = 0.5
epsilon = 1.0
check = 1.0

while 1:
    lastcheck = check
    epsilon *= half
    check = 1.0 + epsilon
    if not ((check != 1.0) and (check != lastcheck)):
        break

# Error bounds for orientation and incircle tests.
ccwerrboundA = (3.0 + 16.0 * epsilon) * epsilon
iccerrboundA = (10.0 + 96.0 * epsilon) * epsilon


def counterclockwise_exact(pa, pb, pc):
    ax,ay=Fraction(pa[0]),Fraction(pa[1])
    bx,by=Fraction(pb[0]),Fraction(pb[1])
    cx,cy=Fraction(pc[0]),Fraction(pc[1])
    return (ax-cx)*(by-cy) - (ay-cy)*(bx-cx)

def counterclockwise(pa, pb, pc):
    """
    Twice the signed area of pa,pb,pc: positive when the points are
    in counter-clockwise order, negative for clockwise, zero when
    collinear.  The sign is exact, the magnitude is only approximate
    when the exact path was not needed.
    """
    detleft = (pa[0] - pc[0]) * (pb[1] - pc[1])
    detright = (pa[1] - pc[1]) * (pb[0] - pc[0])
    det = detleft - detright

    if detleft > 0.0:
        if detright <= 0.0:
            return det
        else:
            detsum = detleft + detright
    elif detleft < 0.0:
        if detright >= 0.0:
            return det
        else:
            detsum = -detleft - detright
    else:
        return det

    errbound = ccwerrboundA * detsum
    if (det >= errbound) or (-det >= errbound):
        return det

    return counterclockwise_exact(pa, pb, pc)

def incircle_exact(pa, pb, pc, pd):
    dx,dy=Fraction(pd[0]),Fraction(pd[1])
    adx = Fraction(pa[0]) - dx
    bdx = Fraction(pb[0]) - dx
    cdx = Fraction(pc[0]) - dx
    ady = Fraction(pa[1]) - dy
    bdy = Fraction(pb[1]) - dy
    cdy = Fraction(pc[1]) - dy

    alift = adx * adx + ady * ady
    blift = bdx * bdx + bdy * bdy
    clift = cdx * cdx + cdy * cdy

    return ( alift * (bdx*cdy - cdx*bdy)
             + blift * (cdx*ady - adx*cdy)
             + clift * (adx*bdy - bdx*ady) )

def incircle(pa, pb, pc, pd):
    """
    Positive if pd is inside the circle through pa,pb,pc, negative
    if outside, zero if cocircular.  pa,pb,pc must be in CCW order,
    otherwise the sign is reversed.
    """
    adx = pa[0] - pd[0]
    bdx = pb[0] - pd[0]
    cdx = pc[0] - pd[0]
    ady = pa[1] - pd[1]
    bdy = pb[1] - pd[1]
    cdy = pc[1] - pd[1]

    bdxcdy = bdx * cdy
    cdxbdy = cdx * bdy
    alift = adx * adx + ady * ady

    cdxady = cdx * ady
    adxcdy = adx * cdy
    blift = bdx * bdx + bdy * bdy

    adxbdy = adx * bdy
    bdxady = bdx * ady
    clift = cdx * cdx + cdy * cdy

    det = alift * (bdxcdy - cdxbdy) \
        + blift * (cdxady - adxcdy) \
        + clift * (adxbdy - bdxady)

    permanent = (abs(bdxcdy) + abs(cdxbdy)) * alift \
              + (abs(cdxady) + abs(adxcdy)) * blift \
              + (abs(adxbdy) + abs(bdxady)) * clift

    errbound = iccerrboundA * permanent
    if (det > errbound) or (-det > errbound):
        return det

    return incircle_exact(pa, pb, pc, pd)

def orientation(a,b,c):
    """ -1, 0 or 1 for clockwise, collinear, counter-clockwise.
    """
    # bool arithmetic on a python bool, not a numpy bool
    ccw=counterclockwise(a,b,c)
    return int(ccw>0)-int(ccw<0)
